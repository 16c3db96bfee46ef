"""Turns the five confirmed interview answers into a Playlab.ai prompt template."""
import logging
import re
from dataclasses import asdict, dataclass, field
from typing import Dict, List, Mapping, Optional, Sequence

from voice_builder.errors import SynthesisFailed
from voice_builder.prompts import template_catalog as catalog
from voice_builder.prompts.questions import TOTAL_QUESTIONS

logger = logging.getLogger(__name__)

_SENTENCE_SPLIT = re.compile(r"[.!?]+")
_STEP_SPLIT = re.compile(r"step|then|next|after|finally", re.IGNORECASE)
_NEGATION = re.compile(r"\bnot\b|\bavoid|\bdon['’]?t\b", re.IGNORECASE)
_OBLIGATION = re.compile(r"\bmust\b|\brequire|\bonly\b", re.IGNORECASE)
_LIMITATION = re.compile(r"\bcannot\b|\bcan['’]?t\b|\blimit", re.IGNORECASE)
_AUDIENCE = re.compile(r"\bfor\s+([^.!?]+)", re.IGNORECASE)


@dataclass
class WorkflowStep:
    step_number: int
    description: str
    sub_bullets: List[str] = field(default_factory=list)


@dataclass
class StarterInput:
    type: str
    label: str
    placeholder: Optional[str] = None
    options: Optional[List[str]] = None
    required: bool = True


@dataclass
class Background:
    expertise: str
    role: str
    target_audience: str
    success_criteria: str


@dataclass
class ConversationRules:
    tone: str
    style: str
    structure: List[str]


@dataclass
class Guidelines:
    boundaries: List[str]
    limitations: List[str]
    requirements: List[str]
    default_guidelines: List[str]


@dataclass
class UserMemory:
    enabled: bool
    tracking_fields: List[str]


@dataclass
class Recommendations:
    model: str
    knowledge_file_types: List[str]
    starter_inputs: List[StarterInput]
    app_name: str
    app_description: str
    user_memory: UserMemory


@dataclass
class Template:
    background: Background
    workflow: List[WorkflowStep]
    conversation_rules: ConversationRules
    guidelines: Guidelines
    recommendations: Recommendations

    def to_dict(self) -> Dict:
        return asdict(self)


@dataclass
class TemplateResult:
    formatted_template: str
    template: Optional[Template] = None


def answers_from_responses(responses: Mapping[int, object], total: int = TOTAL_QUESTIONS) -> List[str]:
    """Order answers by 0-based question index; missing answers become ''.

    Accepts plain strings or records with a ``confirmed_answer`` attribute.
    """
    answers = []
    for index in range(total):
        value = responses.get(index)
        if value is not None and not isinstance(value, str):
            value = getattr(value, "confirmed_answer", None)
        answers.append((value or "").strip())
    return answers


def _sentences(text: str) -> List[str]:
    return [s.strip() for s in _SENTENCE_SPLIT.split(text) if s.strip()]


def _contains_any(text: str, keywords: Sequence[str]) -> bool:
    lowered = text.lower()
    return any(k in lowered for k in keywords)


class DeterministicTemplateStrategy:
    """Keyword extraction over the answers. Same answers, same bytes."""

    name = "deterministic"

    def generate(self, answers: Sequence[str]) -> TemplateResult:
        vision, journey, tone, success, boundaries = answers
        template = Template(
            background=self.background(vision, success),
            workflow=self.workflow(journey),
            conversation_rules=self.conversation_rules(tone),
            guidelines=self.guidelines(boundaries),
            recommendations=self.recommendations(vision, journey, boundaries),
        )
        return TemplateResult(formatted_template=render_markdown(template), template=template)

    # Background

    def background(self, vision: str, success: str) -> Background:
        return Background(
            expertise=self.extract_expertise(vision) or "**[Specify expertise area]**",
            role=vision or "**[Specify role/title]**",
            target_audience=self.extract_audience(vision),
            success_criteria=success or "**[Describe what success looks like for users]**",
        )

    @staticmethod
    def extract_expertise(answer: str) -> str:
        words = answer.split(" ")
        for keyword in catalog.EXPERTISE_KEYWORDS:
            for i, word in enumerate(words):
                if keyword in word.lower():
                    return " ".join(words[max(0, i - 2): i + 1])
        return answer[:100]

    @staticmethod
    def extract_audience(answer: str) -> str:
        if not answer:
            return "**[Specify your target audience]**"
        match = _AUDIENCE.search(answer)
        audience = match.group(1).strip() if match else answer
        if len(audience.split()) < 3:
            return f"{audience} **[Add more context about their needs/situation]**"
        return audience

    # Workflow

    @staticmethod
    def workflow(journey: str) -> List[WorkflowStep]:
        steps = [
            WorkflowStep(
                step_number=n,
                description=sentence,
                sub_bullets=["**[What specific actions are taken in this step?]**"],
            )
            for n, sentence in enumerate(_sentences(journey)[:5], start=1)
        ]
        if not steps:
            steps.append(WorkflowStep(
                step_number=1,
                description="**[What is the first step users take?]**",
                sub_bullets=["**[What information do you need to gather?]**"],
            ))
        return steps

    # Conversation rules

    @staticmethod
    def extract_tone(answer: str) -> str:
        for tone, keywords in catalog.TONE_KEYWORDS:
            if _contains_any(answer, keywords):
                return tone.capitalize()
        return catalog.DEFAULT_TONE

    @staticmethod
    def extract_style(answer: str) -> str:
        for style, keywords in catalog.STYLE_KEYWORDS:
            if _contains_any(answer, keywords):
                return style
        return catalog.DEFAULT_STYLE

    def conversation_rules(self, answer: str) -> ConversationRules:
        if not answer:
            return ConversationRules(
                tone="**[Specify tone: formal, friendly, encouraging, etc.]**",
                style="**[Specify style: question-driven, answer-driven, conversational, etc.]**",
                structure=list(catalog.CONVERSATION_RULE_TEMPLATES["structured"]),
            )
        tone = self.extract_tone(answer)
        if tone in ("Encouraging", "Friendly"):
            structure = catalog.CONVERSATION_RULE_TEMPLATES["supportive"]
        elif tone == "Direct":
            structure = catalog.CONVERSATION_RULE_TEMPLATES["efficient"]
        else:
            structure = catalog.CONVERSATION_RULE_TEMPLATES["structured"]
        return ConversationRules(tone=tone, style=self.extract_style(answer), structure=list(structure))

    # Guidelines

    @staticmethod
    def guidelines(answer: str) -> Guidelines:
        sentences = _sentences(answer)
        boundaries = [s for s in sentences if _NEGATION.search(s)]
        limitations = [s for s in sentences if _LIMITATION.search(s)]
        requirements = [s for s in sentences if _OBLIGATION.search(s)]
        return Guidelines(
            boundaries=boundaries or ["**[What topics should be avoided?]**"],
            limitations=limitations or ["**[What are the limitations of this assistant?]**"],
            requirements=requirements or ["**[What specific requirements must be met?]**"],
            default_guidelines=list(catalog.DEFAULT_GUIDELINES),
        )

    # Recommendations

    @staticmethod
    def analyze_complexity(journey: str) -> str:
        lowered = journey.lower()
        if _contains_any(lowered, catalog.COMPLEX_KEYWORDS) or len(_STEP_SPLIT.split(lowered)) > 4:
            return "high"
        if _contains_any(lowered, catalog.SIMPLE_KEYWORDS) and len(lowered.split(" ")) < 30:
            return "simple"
        return "medium"

    @staticmethod
    def recommend_model(complexity: str, vision: str) -> str:
        if _contains_any(vision, catalog.REASONING_KEYWORDS):
            return catalog.REASONING_MODEL
        return catalog.MODEL_BY_COMPLEXITY.get(complexity, catalog.DEFAULT_EDUCATION_MODEL)

    @staticmethod
    def recommend_knowledge_files(*answers: str) -> List[str]:
        text = " ".join(answers)
        found = [
            entry["label"]
            for entry in catalog.KNOWLEDGE_FILE_TYPES.values()
            if _contains_any(text, entry["keywords"])
        ]
        return found or [catalog.DEFAULT_KNOWLEDGE_FILE]

    @staticmethod
    def recommend_starter_inputs(journey: str) -> List[StarterInput]:
        inputs = []
        if _contains_any(journey, ("grade", "level")):
            inputs.append(StarterInput(type="dropdown", label="Grade Level", options=list(catalog.GRADE_OPTIONS)))
        if _contains_any(journey, ("subject", "topic")):
            inputs.append(StarterInput(type="dropdown", label="Subject Area", options=list(catalog.SUBJECT_OPTIONS)))
        if _contains_any(journey, ("upload", "document", "file")):
            inputs.append(StarterInput(type="file_upload", label="Upload Document", required=False))
        if _contains_any(journey, ("describe", "explain", "detail")):
            inputs.append(StarterInput(type="long_text", label="Description", placeholder="Provide details..."))
        if not inputs:
            inputs.append(StarterInput(
                type="long_text", label="Your Request", placeholder="Describe what you need help with...",
            ))
        return inputs

    @staticmethod
    def app_description(vision: str, journey: str) -> str:
        role = vision.replace("**", "").strip().lower() or "assistant"
        first = _SENTENCE_SPLIT.split(journey)[0].strip().lower()
        first = first or "**[describe what the app helps users do]**"
        return f"An AI-powered {role} that helps you {first}."

    def recommendations(self, vision: str, journey: str, boundaries: str) -> Recommendations:
        complexity = self.analyze_complexity(journey)
        return Recommendations(
            model=self.recommend_model(complexity, vision),
            knowledge_file_types=self.recommend_knowledge_files(vision, journey, boundaries),
            starter_inputs=self.recommend_starter_inputs(journey),
            app_name=vision.replace("**", "").strip() or "Custom AI Assistant",
            app_description=self.app_description(vision, journey),
            user_memory=UserMemory(enabled=True, tracking_fields=list(catalog.DEFAULT_USER_MEMORY_FIELDS)),
        )


def render_markdown(template: Template) -> str:
    rec = template.recommendations
    lines = [f"# {rec.app_name}", "", rec.app_description, "", "---", ""]

    bg = template.background
    lines += [
        "## Background", "",
        f"**Expertise:** {bg.expertise}", "",
        f"**Role:** {bg.role}", "",
        f"**Target Audience:** {bg.target_audience}", "",
        f"**Success Looks Like:** {bg.success_criteria}", "",
        "---", "",
    ]

    lines += ["## Workflow", ""]
    for step in template.workflow:
        lines += [f"### Step {step.step_number}: {step.description}", ""]
        lines += [f"- {bullet}" for bullet in step.sub_bullets]
        lines.append("")
    lines += ["---", ""]

    rules = template.conversation_rules
    lines += [
        "## Formatting and Conversation Rules", "",
        f"**Tone:** {rules.tone}", "",
        f"**Style:** {rules.style}", "",
        "**Structure Guidelines:**",
    ]
    lines += [f"- {rule}" for rule in rules.structure]
    lines += ["", "---", ""]

    g = template.guidelines
    lines += ["## Guidelines & Guardrails", "", "### Default Guidelines"]
    lines += [f"- {item}" for item in g.default_guidelines]
    for title, items in (("Boundaries", g.boundaries), ("Limitations", g.limitations), ("Requirements", g.requirements)):
        lines += ["", f"### {title}"]
        lines += [f"- {item}" for item in items]
    lines += ["", "---", ""]

    lines += ["## Recommended Model", "", f"**{rec.model}**", ""]
    best_for = catalog.MODEL_BEST_FOR.get(rec.model)
    if best_for:
        lines += [f"*Best for: {', '.join(best_for)}*", ""]
    lines += ["---", ""]

    lines += ["## Recommended Knowledge Files", ""]
    lines += [f"- {item}" for item in rec.knowledge_file_types]
    lines += ["", "---", ""]

    lines += ["## Recommended Starter Inputs", ""]
    for n, item in enumerate(rec.starter_inputs, start=1):
        lines.append(f"### {n}. {item.label} ({item.type})")
        if item.placeholder:
            lines.append(f'- Placeholder: "{item.placeholder}"')
        if item.options:
            lines.append(f"- Options: {', '.join(item.options)}")
        lines += [f"- Required: {'Yes' if item.required else 'No'}", ""]
    lines += ["---", ""]

    lines += ["## Recommended User Memory", "", "**Track between sessions:**"]
    lines += [f"- {item}" for item in rec.user_memory.tracking_fields]
    lines += ["", "---", "", "*Generated by Voice Builder for Playlab.ai*", ""]
    return "\n".join(lines)


class GenerativeTemplateStrategy:
    """Delegates the wording to an LLM writer; its text is returned as-is."""

    name = "generative"

    def __init__(self, writer):
        self.writer = writer

    def generate(self, answers: Sequence[str]) -> TemplateResult:
        try:
            text = self.writer.write_template(answers)
        except SynthesisFailed:
            raise
        except Exception as e:
            logger.exception("Template writer failed")
            raise SynthesisFailed(f"Template writer failed: {e}") from e
        text = (text or "").strip()
        if not text:
            raise SynthesisFailed("Template writer returned empty text")
        return TemplateResult(formatted_template=text)


class TemplateGenerator:
    def __init__(self, strategy=None):
        self.strategy = strategy if strategy is not None else DeterministicTemplateStrategy()

    def generate(self, responses: Mapping[int, object]) -> TemplateResult:
        answers = answers_from_responses(responses)
        logger.info("Generating template with %s strategy", self.strategy.name)
        try:
            return self.strategy.generate(answers)
        except SynthesisFailed:
            raise
        except Exception as e:
            logger.exception("Template generation failed")
            raise SynthesisFailed(f"Template generation failed: {e}") from e
