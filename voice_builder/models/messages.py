"""Socket.IO message envelopes. Inbound payloads are validated here before reaching the state machine."""
from typing import Any, Dict, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

PROTOCOL_VERSION = 1

AudioFormat = Literal["webm", "mp3", "wav"]


class InboundMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")

    version: int = Field(default=PROTOCOL_VERSION, alias="v")

    @field_validator("version")
    @classmethod
    def _supported_version(cls, v: int) -> int:
        if v != PROTOCOL_VERSION:
            raise ValueError(f"unsupported protocol version {v}")
        return v


class AnswerPayload(InboundMessage):
    question_index: int = Field(alias="questionIndex", ge=0)
    transcript: str
    confidence: float = Field(default=1.0, ge=0.0, le=1.0)


class AudioChunkPayload(InboundMessage):
    question_index: int = Field(alias="questionIndex", ge=0)
    audio_chunk: bytes = Field(alias="audioChunk")
    format: AudioFormat = "webm"
    is_last_chunk: bool = Field(default=False, alias="isLastChunk")


class ResumePayload(InboundMessage):
    session_id: str = Field(alias="sessionId", min_length=1)


class OutboundMessage(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    def to_wire(self) -> Dict[str, Any]:
        # only fields that were set explicitly go on the wire, so null means null
        return self.model_dump(by_alias=True, exclude_unset=True)


class SessionCreated(OutboundMessage):
    session_id: str = Field(alias="sessionId")
    protocol_version: int = Field(default=PROTOCOL_VERSION, alias="protocolVersion")


class SpokenText(OutboundMessage):
    text: str
    audio: Optional[bytes] = None


class Progress(OutboundMessage):
    current: int
    total: int


class QuestionMessage(OutboundMessage):
    question_index: int = Field(alias="questionIndex")
    question_id: str = Field(alias="questionId")
    text: str
    voice_prompt: str = Field(alias="voicePrompt")
    audio: Optional[bytes] = None
    progress: Progress


class TranscriptionMessage(OutboundMessage):
    question_index: int = Field(alias="questionIndex")
    transcript: Optional[str]
    confidence: float
    provider: Literal["primary", "fallback"]
    use_fallback: Optional[bool] = Field(default=None, alias="useFallback")
    error: Optional[str] = None
    language: Optional[str] = None

    @classmethod
    def primary(cls, question_index: int, transcript: str, confidence: float, language: Optional[str] = None):
        msg = cls(question_index=question_index, transcript=transcript, confidence=confidence, provider="primary")
        if language:
            msg.language = language
        return msg

    @classmethod
    def fallback(cls, question_index: int, error: Optional[str] = None):
        msg = cls(
            question_index=question_index,
            transcript=None,
            confidence=0.0,
            provider="fallback",
            use_fallback=True,
        )
        if error:
            msg.error = error
        return msg


class TemplateGenerated(OutboundMessage):
    template: Optional[Dict[str, Any]]
    formatted_template: str = Field(alias="formattedTemplate")


class ErrorMessage(OutboundMessage):
    message: str
    recoverable: bool
