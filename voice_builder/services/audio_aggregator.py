"""Buffers streamed audio per session and batches it into transcription requests."""
import logging
import threading
import time
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional

from voice_builder.config import settings
from voice_builder.errors import SessionNotFound, TranscriptionUnavailable, TransportDisconnect
from voice_builder.models.messages import TranscriptionMessage
from voice_builder.services.interview_service import InterviewService

logger = logging.getLogger(__name__)


def _run_in_thread(fn, *args):
    t = threading.Thread(target=fn, args=args, daemon=True)
    t.start()
    return t


@dataclass
class AudioChunkBuffer:
    question_index: int
    last_processed_at: float
    chunks: List[bytes] = field(default_factory=list)
    format: str = "webm"
    flush_scheduled: bool = False
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def drain(self, now: float) -> bytes:
        """Concatenate and clear. Caller holds ``lock``."""
        segment = b"".join(self.chunks)
        self.chunks = []
        self.last_processed_at = now
        return segment


class AudioChunkAggregator:
    """Decouples client upload cadence from transcription requests.

    A buffer is flushed when the client marks the last chunk, or once
    ``flush_interval`` seconds have passed since the previous flush. Flushes run
    the transcriber through ``spawn`` so the socket handler never waits on it.
    ``publish(session_id, message)`` delivers the resulting transcription event.
    """

    def __init__(
        self,
        interviews: InterviewService,
        transcriber,
        publish: Callable[[str, TranscriptionMessage], None],
        flush_interval: float = settings.FLUSH_INTERVAL_SEC,
        spawn: Callable = _run_in_thread,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.interviews = interviews
        self.transcriber = transcriber
        self.publish = publish
        self.flush_interval = flush_interval
        self._spawn = spawn
        self._sleep = sleep
        self._clock = clock
        self._buffers: Dict[str, AudioChunkBuffer] = {}
        self._lock = threading.Lock()

    @property
    def enabled(self) -> bool:
        return self.transcriber is not None

    def buffered_bytes(self, session_id: str) -> int:
        with self._lock:
            buf = self._buffers.get(session_id)
        if buf is None:
            return 0
        with buf.lock:
            return sum(len(c) for c in buf.chunks)

    def _buffer_for(self, session_id: str, question_index: int) -> AudioChunkBuffer:
        with self._lock:
            buf = self._buffers.get(session_id)
            if buf is None or buf.question_index != question_index:
                if buf is not None:
                    logger.debug("Dropping buffer of Q%d for %s", buf.question_index + 1, session_id)
                buf = AudioChunkBuffer(question_index=question_index, last_processed_at=self._clock())
                self._buffers[session_id] = buf
            return buf

    def on_chunk(self, session_id: str, question_index: int, chunk: bytes, fmt: str = "webm", is_last_chunk: bool = False) -> bool:
        """Accept one chunk. Returns False when the chunk was ignored as stale."""
        current = self.interviews.current_index(session_id)
        if current is None or question_index != current:
            logger.info(
                "Ignoring audio chunk for Q%d in %s (current: %s)",
                question_index + 1, session_id, None if current is None else current + 1,
            )
            return False

        if not self.enabled:
            self._deliver(session_id, TranscriptionMessage.fallback(question_index))
            return True

        buf = self._buffer_for(session_id, question_index)
        segment = None
        delay = None
        with buf.lock:
            buf.chunks.append(bytes(chunk))
            buf.format = fmt
            now = self._clock()
            if is_last_chunk or now - buf.last_processed_at >= self.flush_interval:
                segment = buf.drain(now)
            elif not buf.flush_scheduled:
                buf.flush_scheduled = True
                delay = max(0.0, self.flush_interval - (now - buf.last_processed_at))

        if segment:
            logger.info("Flushing %d bytes for Q%d in %s", len(segment), question_index + 1, session_id)
            self._spawn(self._transcribe, session_id, question_index, segment, fmt)
        elif delay is not None:
            self._spawn(self._flush_later, session_id, buf, delay)
        return True

    def _flush_later(self, session_id: str, buf: AudioChunkBuffer, delay: float) -> None:
        self._sleep(delay)
        with self._lock:
            if self._buffers.get(session_id) is not buf:
                return
        with buf.lock:
            buf.flush_scheduled = False
            if not buf.chunks:
                return
            segment = buf.drain(self._clock())
            fmt = buf.format
        logger.info("Timed flush of %d bytes for Q%d in %s", len(segment), buf.question_index + 1, session_id)
        self._transcribe(session_id, buf.question_index, segment, fmt)

    def _transcribe(self, session_id: str, question_index: int, segment: bytes, fmt: str) -> None:
        try:
            result = self.transcriber.transcribe(segment, fmt)
        except TranscriptionUnavailable as e:
            logger.warning("Transcription unavailable for %s (%s): %s", session_id, e.reason, e.message)
            message = TranscriptionMessage.fallback(
                question_index, error="Transcription failed, using browser speech recognition"
            )
        except Exception:
            logger.exception("Transcription failed for %s", session_id)
            message = TranscriptionMessage.fallback(
                question_index, error="Transcription failed, using browser speech recognition"
            )
        else:
            message = TranscriptionMessage.primary(question_index, result.transcript, result.confidence, result.language)
            try:
                self.interviews.record_transcript(session_id, question_index, result.transcript, result.confidence)
            except SessionNotFound:
                pass

        if not self.interviews.has_session(session_id):
            logger.info("Discarding transcription for purged session %s", session_id)
            return
        self._deliver(session_id, message)

    def _deliver(self, session_id: str, message: TranscriptionMessage) -> None:
        try:
            self.publish(session_id, message)
        except TransportDisconnect:
            logger.info("Connection for %s is gone; transcription dropped", session_id)

    def discard(self, session_id: str) -> None:
        with self._lock:
            self._buffers.pop(session_id, None)
