"""Gemini client used by the generative template strategy."""
import logging
import time
from typing import Sequence

from google import genai
from google.genai import types
from google.genai.errors import ClientError
from google.genai.types import HttpOptions

from voice_builder.config import settings
from voice_builder.errors import SynthesisFailed
from voice_builder.prompts.system_prompts import TEMPLATE_WRITER_PROMPT, TEMPLATE_WRITER_SYSTEM
from voice_builder.prompts.template_catalog import DEFAULT_GUIDELINES

logger = logging.getLogger(__name__)


def build_genai_client():
    if settings.USE_VERTEX == "1":
        logger.info("Using Vertex AI (v1) via ADC")
        return genai.Client(
            vertexai=True,
            project=settings.PROJECT_ID,
            location=settings.LOCATION,
            http_options=HttpOptions(api_version="v1"),
        )
    logger.info("Using AI Studio API key (v1beta)")
    return genai.Client(api_key=settings.API_KEY)


def build_template_prompt(answers: Sequence[str]) -> str:
    q1, q2, q3, q4, q5 = answers
    return TEMPLATE_WRITER_PROMPT.format(
        default_guidelines="\n".join(DEFAULT_GUIDELINES),
        q1=q1, q2=q2, q3=q3, q4=q4, q5=q5,
        tone=q3.lower() or "professional and supportive",
    )


class GeminiTemplateWriter:
    """Writes the template text from the five raw answers."""

    def __init__(self, client=None, model: str = settings.GEMINI_MODEL, temperature: float = 0.7, max_tokens: int = 1000):
        self._client = client if client is not None else build_genai_client()
        self.model = model
        self.temperature = temperature
        self.max_tokens = max_tokens

    def write_template(self, answers: Sequence[str]) -> str:
        prompt = build_template_prompt(answers)
        config = types.GenerateContentConfig(
            system_instruction=TEMPLATE_WRITER_SYSTEM,
            temperature=self.temperature,
            max_output_tokens=self.max_tokens,
        )

        last_error = None
        for attempt in range(2):
            try:
                resp = self._client.models.generate_content(model=self.model, contents=prompt, config=config)
            except ClientError as e:
                last_error = e
                if "RESOURCE_EXHAUSTED" in str(e) or getattr(e, "code", None) == 429:
                    logger.warning("Gemini rate limited (attempt %d)", attempt + 1)
                    time.sleep(0.9)
                    continue
                break
            except Exception as e:
                last_error = e
                break
            txt = (getattr(resp, "text", "") or "").strip()
            if not txt:
                raise SynthesisFailed("Gemini returned an empty template")
            return txt

        logger.error("Gemini template error: %r", last_error)
        raise SynthesisFailed(f"Gemini request failed: {last_error}")
