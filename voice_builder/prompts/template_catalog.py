"""Playlab.ai feature catalog used by the deterministic template strategy."""

# Default 4 guidelines & guardrails for all apps
DEFAULT_GUIDELINES = (
    "Avoid language that might seem judgmental or dismissive.",
    "Be inclusive in your examples and explanations, consider multiple perspectives, and avoid stereotypes.",
    "Provide clear and concise responses.",
    "If off-topic, prompt users to return to the main subject.",
)

CONVERSATION_RULE_TEMPLATES = {
    "structured": (
        "Structure responses with headers and bullet points for easy scanning",
        "Always reference relevant knowledge base materials when available",
        "Provide examples that relate to the user's specific context",
        "Ask one clarifying question at a time to avoid overwhelming users",
    ),
    "supportive": (
        "Use encouraging and supportive language",
        "Acknowledge user expertise and experience",
        "Offer multiple options when possible",
        "Check in on understanding before proceeding to next steps",
    ),
    "efficient": (
        "Get straight to the point with actionable guidance",
        "Prioritize the most important information first",
        "Use concise language without sacrificing clarity",
        "Provide quick wins alongside long-term strategies",
    ),
}

# Ordered: the first tone with a matching keyword wins.
TONE_KEYWORDS = (
    ("formal", ("formal", "professional", "official")),
    ("friendly", ("friendly", "warm", "approachable")),
    ("encouraging", ("encouraging", "supportive", "positive")),
    ("direct", ("direct", "straightforward", "concise")),
)
DEFAULT_TONE = "Professional and supportive"

STYLE_KEYWORDS = (
    ("Question-driven dialogue", ("question", "ask")),
    ("Direct answer-driven", ("answer", "provide")),
    ("Conversational", ("conversation", "chat")),
)
DEFAULT_STYLE = "Balanced question and answer approach"

EXPERTISE_KEYWORDS = ("coach", "advisor", "specialist", "expert", "consultant", "mentor")

COMPLEX_KEYWORDS = ("analyze", "evaluate", "synthesize", "compare", "integrate", "assess", "multi-step")
SIMPLE_KEYWORDS = ("quick", "simple", "basic", "generate", "create")
REASONING_KEYWORDS = ("math", "problem", "analysis")

KNOWLEDGE_FILE_TYPES = {
    "documents": {
        "label": "PDF documents",
        "extensions": (".pdf",),
        "keywords": ("curriculum", "standards", "policy", "handbook", "guide"),
    },
    "spreadsheets": {
        "label": "CSV/Excel files",
        "extensions": (".csv", ".xlsx"),
        "keywords": ("data", "student records", "assessment", "grades", "roster"),
    },
    "word_docs": {
        "label": "Word documents",
        "extensions": (".docx", ".doc"),
        "keywords": ("lesson plan", "template", "report", "notes"),
    },
    "presentations": {
        "label": "PowerPoint presentations",
        "extensions": (".pptx", ".ppt"),
        "keywords": ("training", "presentation", "slides"),
    },
}
DEFAULT_KNOWLEDGE_FILE = "PDF documents (general reference materials)"

DEFAULT_USER_MEMORY_FIELDS = (
    "Grade Level or context",
    "Subject Area",
    "User Role",
    "Previous interactions",
    "User preferences",
)

MODEL_BY_COMPLEXITY = {
    "high": "Claude 4 Opus",
    "medium": "Claude 3.7 Sonnet",
    "simple": "Claude 3.5 Haiku",
}
REASONING_MODEL = "Claude 4 Sonnet (Reasoning)"
DEFAULT_EDUCATION_MODEL = "Claude 3.7 Sonnet"

MODEL_BEST_FOR = {
    "Claude 3 Opus": ("complex analysis", "long documents", "critical thinking"),
    "Claude 3.5 Haiku": ("quick responses", "simple tasks", "high volume"),
    "Claude 3.7 Sonnet": ("general purpose", "balanced performance", "education"),
    "Claude 4 Opus": ("complex workflows", "detailed analysis", "research"),
    "Claude 4 Sonnet": ("education", "content creation", "conversation"),
    "Claude 4 Sonnet (Reasoning)": ("problem solving", "step-by-step analysis", "math"),
    "Gemini 2.5 Flash": ("quick tasks", "multimodal", "real-time"),
    "Gemini 2.5 Pro": ("multimodal", "long context", "general purpose"),
    "GPT-4o": ("multimodal", "general purpose", "conversation"),
    "o3 Mini": ("reasoning", "problem solving", "efficiency"),
}

GRADE_OPTIONS = ("K", "1", "2", "3", "4", "5", "6", "7", "8", "9", "10", "11", "12")
SUBJECT_OPTIONS = ("English/Language Arts", "Mathematics", "Science", "Social Studies", "Other")
