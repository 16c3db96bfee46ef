"""Fixed interview question catalog and spoken messages."""
from dataclasses import dataclass, field
from typing import List


@dataclass(frozen=True)
class Question:
    id: str
    order: int
    text: str
    voice_prompt: str
    extraction_hints: List[str] = field(default_factory=list)
    clarification_prompts: List[str] = field(default_factory=list)


# Voice prompts carry no commas, periods or apostrophes so the TTS voice reads them cleanly.
INTERVIEW_QUESTIONS = (
    Question(
        id="q1_app_vision",
        order=1,
        text="Tell me about the app you're envisioning. What problem does it solve, and who is it for?",
        voice_prompt=(
            "Hi Im here to help you build a custom AI assistant Lets start "
            "Tell me about the app youre envisioning What problem does it solve and who is it for?"
        ),
        extraction_hints=["app", "problem", "solve", "user", "audience", "helps", "for"],
        clarification_prompts=[
            "Can you tell me more about the specific pain points your users face?",
            "What makes your target audience unique?",
        ],
    ),
    Question(
        id="q2_user_journey",
        order=2,
        text="Describe a typical user's journey through the app. What does their experience look like from start to finish?",
        voice_prompt=(
            "Great Now describe a typical users journey through the app "
            "What does their experience look like from start to finish?"
        ),
        extraction_hints=["journey", "experience", "start", "finish", "first", "then", "next", "finally"],
        clarification_prompts=[
            "What information does the user provide at the beginning?",
            "How does the app guide them through each step?",
        ],
    ),
    Question(
        id="q3_tone_personality",
        order=3,
        text="What tone, personality, or expertise should the app convey? How should it make users feel?",
        voice_prompt="Perfect What tone personality or expertise should the app convey How should it make users feel?",
        extraction_hints=[
            "tone", "personality", "expertise", "feel", "friendly",
            "professional", "casual", "formal", "supportive", "empathetic",
        ],
        clarification_prompts=[
            "Are there specific experts or styles you want the app to emulate?",
            "What emotional response do you want users to have?",
        ],
    ),
    Question(
        id="q4_success_outcome",
        order=4,
        text="What would success look like for this app? If users walked away having accomplished one thing, what would it be?",
        voice_prompt=(
            "Excellent What would success look like for this app "
            "If users walked away having accomplished one thing what would it be?"
        ),
        extraction_hints=["success", "accomplish", "achieve", "goal", "outcome", "result"],
        clarification_prompts=[
            "How will users know they've gotten value from the app?",
            "What specific outcome should they be able to achieve?",
        ],
    ),
    Question(
        id="q5_boundaries",
        order=5,
        text="Are there any boundaries or things the app should avoid doing or suggesting?",
        voice_prompt="Finally are there any boundaries or things the app should avoid doing or suggesting?",
        extraction_hints=["boundaries", "avoid", "not", "dont", "shouldnt", "never", "restrict", "limit"],
        clarification_prompts=[
            "How should the app handle off-topic requests?",
            "Are there any compliance or ethical concerns to consider?",
        ],
    ),
)

TOTAL_QUESTIONS = len(INTERVIEW_QUESTIONS)

WELCOME_MESSAGE = (
    "Welcome to Voice Builder for Playlab I will ask you 5 questions to help design "
    "your custom AI assistant This should take about 3 minutes Ready to begin"
)

COMPLETION_MESSAGE = (
    "Great I have all the information I need Let me generate your custom AI assistant "
    "template for Playlab This will just take a moment"
)


def spoken_texts() -> List[str]:
    """Every fixed text the server speaks, in the order it is first needed."""
    return [WELCOME_MESSAGE] + [q.voice_prompt for q in INTERVIEW_QUESTIONS] + [COMPLETION_MESSAGE]
