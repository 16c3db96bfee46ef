# routes/ws_routes.py
import itertools
import logging
import threading
from typing import Dict, Optional

from flask import request
from pydantic import ValidationError

from voice_builder.config import settings
from voice_builder.errors import InvalidTransition, SynthesisFailed, TransportDisconnect, VoiceBuilderError
from voice_builder.models.interview_state import InterviewStage
from voice_builder.models.messages import (
    AnswerPayload,
    AudioChunkPayload,
    ErrorMessage,
    Progress,
    QuestionMessage,
    ResumePayload,
    SessionCreated,
    SpokenText,
    TemplateGenerated,
    TranscriptionMessage,
)
from voice_builder.prompts.questions import COMPLETION_MESSAGE, WELCOME_MESSAGE
from voice_builder.services.audio_aggregator import AudioChunkAggregator
from voice_builder.services.interview_service import InterviewService
from voice_builder.services.template_generator import TemplateGenerator

logger = logging.getLogger(__name__)


class InterviewProtocol:
    """Socket.IO side of the interview: one connection drives one session.

    Connections and sessions are bound both ways so background work (transcription,
    purge timers) can find the live connection for a session, if any.
    """

    def __init__(
        self,
        socketio,
        interviews: InterviewService,
        generator: TemplateGenerator,
        transcriber=None,
        synthesizer=None,
        spawn=None,
        sleep=None,
        grace_period: float = settings.DISCONNECT_GRACE_SEC,
        flush_interval: float = settings.FLUSH_INTERVAL_SEC,
    ):
        self.socketio = socketio
        self.interviews = interviews
        self.generator = generator
        self.synthesizer = synthesizer
        self.grace_period = grace_period
        self._spawn = spawn or socketio.start_background_task
        self._sleep = sleep or socketio.sleep
        self.aggregator = AudioChunkAggregator(
            interviews,
            transcriber,
            publish=self.publish_transcription,
            flush_interval=flush_interval,
            spawn=self._spawn,
            sleep=self._sleep,
        )
        self._sid_sessions: Dict[str, str] = {}
        self._session_sids: Dict[str, str] = {}
        self._purge_tokens: Dict[str, int] = {}
        self._tokens = itertools.count(1)
        self._lock = threading.Lock()

    # connection <-> session binding

    def _bind(self, sid: str, session_id: str) -> Optional[str]:
        """Make ``sid`` the only connection driving ``session_id``. Returns the displaced sid, if any."""
        with self._lock:
            previous = self._session_sids.get(session_id)
            if previous is not None and previous != sid:
                self._sid_sessions.pop(previous, None)
            else:
                previous = None
            self._sid_sessions[sid] = session_id
            self._session_sids[session_id] = sid
            self._purge_tokens.pop(session_id, None)
            return previous

    def _unbind(self, sid: str) -> Optional[str]:
        with self._lock:
            session_id = self._sid_sessions.pop(sid, None)
            if session_id is not None and self._session_sids.get(session_id) == sid:
                del self._session_sids[session_id]
            return session_id

    def session_for(self, sid: str) -> Optional[str]:
        with self._lock:
            return self._sid_sessions.get(sid)

    def _require_session(self, sid: str) -> str:
        session_id = self.session_for(sid)
        if session_id is None:
            raise VoiceBuilderError("No active session", recoverable=False)
        return session_id

    # outbound

    def _emit(self, sid: str, event: str, message=None) -> None:
        if message is None:
            self.socketio.emit(event, to=sid)
        else:
            self.socketio.emit(event, message.to_wire(), to=sid)

    def _emit_error(self, sid: str, message: str, recoverable: bool) -> None:
        self._emit(sid, "interview:error", ErrorMessage(message=message, recoverable=recoverable))

    def _speak(self, text: str) -> Optional[bytes]:
        if self.synthesizer is None:
            return None
        return self.synthesizer.synthesize(text)

    def _emit_question(self, sid: str, session_id: str) -> None:
        question = self.interviews.current_question(session_id)
        index = self.interviews.current_index(session_id)
        self._emit(sid, "interview:question", QuestionMessage(
            question_index=index,
            question_id=question.id,
            text=question.text,
            voice_prompt=question.voice_prompt,
            audio=self._speak(question.voice_prompt),
            progress=Progress(**self.interviews.progress(session_id)),
        ))

    def publish_transcription(self, session_id: str, message: TranscriptionMessage) -> None:
        with self._lock:
            sid = self._session_sids.get(session_id)
        if sid is None:
            raise TransportDisconnect(f"No connection for session {session_id}")
        self._emit(sid, "interview:transcription", message)

    # dispatch

    def dispatch(self, sid: str, handler, failure_message: str, *args, recoverable: bool = True) -> None:
        try:
            handler(sid, *args)
        except ValidationError as e:
            logger.warning("Invalid payload from %s: %s", sid, e)
            first = e.errors()[0]
            field = ".".join(str(p) for p in first.get("loc", ())) or "payload"
            self._emit_error(sid, f"Invalid payload: {field}: {first.get('msg')}", True)
        except VoiceBuilderError as e:
            logger.info("%s from %s: %s", type(e).__name__, sid, e.message)
            self._emit_error(sid, e.message, e.recoverable)
        except Exception:
            logger.exception("Error handling event from %s", sid)
            if not recoverable:
                session_id = self.session_for(sid)
                if session_id is not None:
                    self.interviews.fail(session_id)
            self._emit_error(sid, failure_message, recoverable)

    # inbound events

    def on_start(self, sid: str) -> None:
        previous = self._unbind(sid)
        if previous is not None:
            # explicit restart: the old interview is abandoned
            self.aggregator.discard(previous)
            self.interviews.delete_session(previous)

        session = self.interviews.create_session()
        self._bind(sid, session.session_id)
        self._emit(sid, "interview:session-created", SessionCreated(
            session_id=session.session_id, protocol_version=1,
        ))
        self._emit(sid, "interview:welcome", SpokenText(text=WELCOME_MESSAGE, audio=self._speak(WELCOME_MESSAGE)))

    def on_begin(self, sid: str) -> None:
        session_id = self._require_session(sid)
        self.interviews.start_interview(session_id)
        self._emit_question(sid, session_id)

    def on_answer(self, sid: str, data) -> None:
        session_id = self._require_session(sid)
        payload = AnswerPayload.model_validate(data or {})
        current = self.interviews.current_index(session_id)
        if current is None or payload.question_index != current:
            raise InvalidTransition(
                f"Answer is for question {payload.question_index} but the current question is {current}"
            )

        self.interviews.save_response(session_id, payload.question_index, payload.transcript, payload.confidence)
        self.aggregator.discard(session_id)

        if self.interviews.advance(session_id):
            self._emit_question(sid, session_id)
            return

        self._emit(sid, "interview:generating-template")
        self._emit(sid, "interview:completion", SpokenText(
            text=COMPLETION_MESSAGE, audio=self._speak(COMPLETION_MESSAGE),
        ))
        self._generate(sid, session_id)

    def _generate(self, sid: str, session_id: str) -> None:
        try:
            result = self.generator.generate(self.interviews.all_responses(session_id))
        except SynthesisFailed as e:
            logger.error("Template generation failed for %s: %s", session_id, e.message)
            raise SynthesisFailed(f"Failed to generate template: {e.message}") from e

        self.interviews.complete(session_id, result.formatted_template)
        template = result.template.to_dict() if result.template is not None else None
        self._emit(sid, "template:generated", TemplateGenerated(
            template=template, formatted_template=result.formatted_template,
        ))

    def on_retry_template(self, sid: str) -> None:
        session_id = self._require_session(sid)
        if self.interviews.stage(session_id) != InterviewStage.GENERATING:
            raise InvalidTransition("No template generation to retry")
        self._emit(sid, "interview:generating-template")
        self._generate(sid, session_id)

    def on_audio_chunk(self, sid: str, data) -> None:
        session_id = self._require_session(sid)
        payload = AudioChunkPayload.model_validate(data or {})
        self.aggregator.on_chunk(
            session_id,
            payload.question_index,
            payload.audio_chunk,
            fmt=payload.format,
            is_last_chunk=payload.is_last_chunk,
        )

    def on_resume(self, sid: str, data) -> None:
        payload = ResumePayload.model_validate(data or {})
        session = self.interviews.get_session(payload.session_id)
        self._unbind(sid)
        displaced = self._bind(sid, session.session_id)
        logger.info("Connection %s resumed session %s", sid, session.session_id)
        if displaced is not None:
            logger.info("Connection %s lost session %s to %s", displaced, session.session_id, sid)
            self._emit_error(displaced, "Session resumed on another connection", False)

        stage = self.interviews.stage(session.session_id)
        if stage == InterviewStage.WELCOME:
            self._emit(sid, "interview:welcome", SpokenText(text=WELCOME_MESSAGE, audio=self._speak(WELCOME_MESSAGE)))
        elif stage == InterviewStage.QUESTIONING:
            self._emit_question(sid, session.session_id)
        elif stage == InterviewStage.GENERATING:
            self._emit(sid, "interview:generating-template")
            self._generate(sid, session.session_id)
        elif stage == InterviewStage.COMPLETE:
            self._emit(sid, "template:generated", TemplateGenerated(
                template=None, formatted_template=session.formatted_template,
            ))
        else:
            raise VoiceBuilderError("Interview ended with an error; please restart", recoverable=False)

    def on_disconnect(self, sid: str) -> None:
        session_id = self._unbind(sid)
        if session_id is None:
            return
        self.aggregator.discard(session_id)
        with self._lock:
            if session_id in self._session_sids:
                return
            token = next(self._tokens)
            self._purge_tokens[session_id] = token
        self._spawn(self._purge_later, session_id, token)

    def _purge_later(self, session_id: str, token: int) -> None:
        self._sleep(self.grace_period)
        with self._lock:
            if self._purge_tokens.get(session_id) != token:
                return
            del self._purge_tokens[session_id]
        self.interviews.delete_session(session_id)
        logger.info("Purged session %s after disconnect grace period", session_id)


def register_ws_handlers(socketio, protocol: InterviewProtocol) -> None:
    @socketio.on("connect")
    def handle_connect(*_):
        logger.info("WS client connected: %s", request.sid)

    @socketio.on("disconnect")
    def handle_disconnect(*_):
        logger.info("WS client disconnected: %s", request.sid)
        protocol.on_disconnect(request.sid)

    @socketio.on("interview:start")
    def handle_start(*_):
        protocol.dispatch(request.sid, protocol.on_start, "Failed to start interview", recoverable=False)

    @socketio.on("interview:begin")
    def handle_begin(*_):
        protocol.dispatch(request.sid, protocol.on_begin, "Failed to begin interview", recoverable=False)

    @socketio.on("interview:answer")
    def handle_answer(data=None):
        protocol.dispatch(request.sid, protocol.on_answer, "Failed to process answer", data)

    @socketio.on("interview:audio-chunk")
    def handle_audio_chunk(data=None):
        protocol.dispatch(request.sid, protocol.on_audio_chunk, "Failed to process audio", data)

    @socketio.on("interview:resume")
    def handle_resume(data=None):
        protocol.dispatch(request.sid, protocol.on_resume, "Failed to resume interview", data, recoverable=False)

    @socketio.on("template:retry")
    def handle_retry(*_):
        protocol.dispatch(request.sid, protocol.on_retry_template, "Failed to generate template", recoverable=False)
