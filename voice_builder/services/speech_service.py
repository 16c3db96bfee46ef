# speech_service.py
"""Speech-to-Text and Text-to-Speech adapters (Google Cloud, with transcoding)."""

import io
import logging
import threading
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from google.api_core import exceptions as gexc
from google.cloud import speech_v2
from google.cloud import texttospeech
from pydub import AudioSegment

from voice_builder.config import settings
from voice_builder.errors import TranscriptionUnavailable

logger = logging.getLogger(__name__)


class TranscodeError(RuntimeError):
    pass


def detect_audio_signature_prefix(b: bytes) -> str:
    if not b:
        return "empty"
    head = b[:64]
    if head.startswith(b"data:"):
        return "data-uri"
    if head.startswith(b"ID3") or head[:2] in (b"\xff\xfb", b"\xff\xf3", b"\xff\xf2"):
        return "mp3"
    if head[:4] == b"RIFF":
        return "wav"
    if head[:4] == b"OggS":
        return "ogg"
    if b"OpusHead" in head:
        return "opus"
    if b"\x1A\x45\xDF\xA3" in head:
        return "webm"
    if b"ftyp" in head:
        return "mp4"
    return "unknown"


def transcode_to_wav_bytes(input_bytes: bytes, format_hint: Optional[str] = None, target_rate: int = 16000) -> bytes:
    """
    Convert mp3/webm/ogg -> 16-bit PCM WAV bytes (mono, target_rate).
    Requires ffmpeg on PATH. Raises TranscodeError if conversion fails.
    """
    if not input_bytes:
        raise TranscodeError("Empty audio bytes")

    last_exc = None
    audio = None
    for fmt in (format_hint, "webm", "ogg", "mp3", "wav"):
        if not fmt:
            continue
        try:
            audio = AudioSegment.from_file(io.BytesIO(input_bytes), format=fmt)
            break
        except Exception as e:
            last_exc = e
    if audio is None:
        raise TranscodeError(f"Transcode autodetect failed: {last_exc}")

    audio = audio.set_frame_rate(target_rate).set_channels(1).set_sample_width(2)
    out = io.BytesIO()
    audio.export(out, format="wav")
    return out.getvalue()


def classify_provider_error(exc: Exception) -> str:
    """Map a provider exception onto a TranscriptionUnavailable reason."""
    if isinstance(exc, (gexc.TooManyRequests, gexc.ResourceExhausted)):
        return TranscriptionUnavailable.RATE_LIMITED
    if isinstance(exc, (gexc.Unauthenticated, gexc.PermissionDenied)):
        return TranscriptionUnavailable.AUTH_FAILED
    if isinstance(exc, (gexc.ServiceUnavailable, gexc.DeadlineExceeded, gexc.RetryError, ConnectionError, TimeoutError)):
        return TranscriptionUnavailable.CONNECTION_FAILED
    return TranscriptionUnavailable.OTHER


_REASON_MESSAGES = {
    TranscriptionUnavailable.RATE_LIMITED: "Speech-to-text rate limit exceeded",
    TranscriptionUnavailable.AUTH_FAILED: "Speech-to-text authentication failed",
    TranscriptionUnavailable.CONNECTION_FAILED: "Speech-to-text connection failed",
    TranscriptionUnavailable.OTHER: "Speech-to-text error",
}


@dataclass(frozen=True)
class TranscriptionResult:
    transcript: str
    confidence: float
    language: Optional[str] = None


class GoogleSpeechTranscriber:
    """Transcribes one buffered audio segment with Google Speech-to-Text v2."""

    # Maximum bytes accepted for synchronous recognition
    MAX_IN_MEMORY_BYTES = 6 * 1024 * 1024
    # Speech v2 often reports 0.0 for short audio; use this instead
    DEFAULT_CONFIDENCE = 0.9

    def __init__(
        self,
        project_id: str = settings.PROJECT_ID,
        language: str = settings.LANG_STT,
        model: str = settings.STT_MODEL,
        timeout: float = settings.TRANSCRIPTION_TIMEOUT_SEC,
        client=None,
    ):
        self.project_id = project_id
        self.language = language
        self.model = model
        self.timeout = timeout
        self._client = client if client is not None else speech_v2.SpeechClient()

    def _prepare(self, audio: bytes, fmt: str) -> bytes:
        sig = detect_audio_signature_prefix(audio)
        if sig == "wav":
            return audio
        try:
            wav = transcode_to_wav_bytes(audio, format_hint=fmt)
            logger.debug("transcoded %s (%d bytes) -> wav bytes=%d", sig, len(audio), len(wav))
            return wav
        except TranscodeError as e:
            # the recognizer auto-detects encodings; send the original bytes
            logger.warning("STT transcode error, sending raw audio: %s", e)
            return audio

    def transcribe(self, audio: bytes, fmt: str = "webm") -> TranscriptionResult:
        if not audio:
            raise TranscriptionUnavailable("Empty audio segment")
        payload = self._prepare(audio, fmt)
        if len(payload) > self.MAX_IN_MEMORY_BYTES:
            raise TranscriptionUnavailable("Audio too large for synchronous transcription")

        config = speech_v2.RecognitionConfig(
            auto_decoding_config=speech_v2.AutoDetectDecodingConfig(),
            language_codes=[self.language],
            model=self.model,
            features=speech_v2.RecognitionFeatures(
                enable_automatic_punctuation=True,
                enable_word_time_offsets=False,
            ),
        )
        req = speech_v2.RecognizeRequest(
            recognizer=f"projects/{self.project_id}/locations/global/recognizers/_",
            config=config,
            content=payload,
        )

        try:
            resp = self._client.recognize(request=req, timeout=self.timeout)
        except Exception as e:
            reason = classify_provider_error(e)
            logger.warning("STT API error (%s): %s", reason, e)
            raise TranscriptionUnavailable(f"{_REASON_MESSAGES[reason]}: {e}", reason=reason) from e

        results = [r for r in resp.results if r.alternatives]
        if not results:
            raise TranscriptionUnavailable("No speech detected")

        transcript = " ".join(r.alternatives[0].transcript.strip() for r in results).strip()
        confidences = [r.alternatives[0].confidence for r in results if r.alternatives[0].confidence > 0]
        confidence = sum(confidences) / len(confidences) if confidences else self.DEFAULT_CONFIDENCE
        language = getattr(results[0], "language_code", None) or None
        logger.info("Transcription complete: %r", transcript[:50])
        return TranscriptionResult(transcript=transcript, confidence=confidence, language=language)


class SpeechSynthesizer:
    """Text -> MP3 bytes with Google TTS, cached by exact text.

    Failures return None so callers continue text-only.
    """

    MAX_CHARS = 3000

    def __init__(self, voice_name: str = settings.VOICE_NAME, language: str = settings.LANG_TTS, client=None):
        self.voice_name = voice_name
        self.language = language
        self._client = client if client is not None else texttospeech.TextToSpeechClient()
        self._cache: Dict[str, bytes] = {}
        self._lock = threading.Lock()

    def _voice_candidates(self) -> List[Dict[str, Optional[str]]]:
        return [
            {"language_code": self.language, "name": self.voice_name},
            {"language_code": self.language, "name": None},
        ]

    def _synthesize_uncached(self, text: str) -> bytes:
        input_text = texttospeech.SynthesisInput(text=text[: self.MAX_CHARS])
        audio_conf = texttospeech.AudioConfig(
            audio_encoding=texttospeech.AudioEncoding.MP3,
            speaking_rate=1.0,
            pitch=0.0,
        )
        last_err = None
        for c in self._voice_candidates():
            try:
                voice = texttospeech.VoiceSelectionParams(
                    language_code=c["language_code"], name=c["name"]
                ) if c["name"] else texttospeech.VoiceSelectionParams(language_code=c["language_code"])
                resp = self._client.synthesize_speech(input=input_text, voice=voice, audio_config=audio_conf)
                audio_content = getattr(resp, "audio_content", b"") or b""
                if audio_content:
                    return audio_content
                logger.warning("TTS returned empty audio with voice %s", c)
            except Exception as e:
                last_err = e
                logger.warning("TTS exception for %s: %s", c, e)
        raise RuntimeError(f"TTS produced no audio. last_err={last_err}")

    def synthesize(self, text: str) -> Optional[bytes]:
        text = (text or "").strip()
        if not text:
            return None
        with self._lock:
            cached = self._cache.get(text)
        if cached is not None:
            logger.debug("Using cached audio for: %s", text[:50])
            return cached
        try:
            audio = self._synthesize_uncached(text)
        except Exception:
            logger.exception("TTS failed for: %s", text[:50])
            return None
        with self._lock:
            self._cache[text] = audio
        return audio

    def pregenerate(self, texts: Iterable[str]) -> int:
        """Warm the cache. Returns how many texts now have audio."""
        texts = list(texts)
        done = sum(1 for text in texts if self.synthesize(text) is not None)
        logger.info("Pre-generated audio for %d/%d prompts", done, len(texts))
        return done

    def cache_size(self) -> int:
        with self._lock:
            return len(self._cache)
