# app.py
import logging
import os
import socket
import sys

from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO

from voice_builder.config import settings
from voice_builder.models.session_store import SessionStore
from voice_builder.prompts.questions import spoken_texts
from voice_builder.routes.interview_routes import interview_bp
from voice_builder.routes.ws_routes import InterviewProtocol, register_ws_handlers
from voice_builder.services.interview_service import InterviewService
from voice_builder.services.template_generator import (
    DeterministicTemplateStrategy,
    GenerativeTemplateStrategy,
    TemplateGenerator,
)

logger = logging.getLogger(__name__)


def setup_logging(level: str = settings.LOG_LEVEL) -> None:
    logging.basicConfig(
        format="%(asctime)s %(levelname)s %(name)s - %(message)s",
        level=getattr(logging, str(level).upper(), logging.INFO),
    )


def build_transcriber():
    if not settings.ENABLE_TRANSCRIPTION:
        logger.info("Server transcription disabled, clients use browser speech recognition")
        return None
    from voice_builder.services.speech_service import GoogleSpeechTranscriber
    logger.info("Google speech-to-text initialized")
    return GoogleSpeechTranscriber()


def build_synthesizer():
    if not settings.ENABLE_TTS:
        logger.warning("Text-to-speech disabled; questions are sent text-only")
        return None
    from voice_builder.services.speech_service import SpeechSynthesizer
    return SpeechSynthesizer()


def build_template_generator():
    if settings.TEMPLATE_STRATEGY == "generative":
        from voice_builder.services.ai_service import GeminiTemplateWriter
        return TemplateGenerator(GenerativeTemplateStrategy(GeminiTemplateWriter()))
    return TemplateGenerator(DeterministicTemplateStrategy())


def _sweep_sessions(socketio, interviews: InterviewService, interval: float, max_age: float):
    while True:
        socketio.sleep(interval)
        try:
            interviews.sweep_expired(max_age)
        except Exception:
            logger.exception("Session sweep failed")


def create_app(
    transcriber=None,
    synthesizer=None,
    template_generator=None,
    interviews=None,
    spawn=None,
    sleep=None,
    use_providers=True,
    start_background_tasks=True,
):
    """Build the Flask app and its SocketIO server.

    With ``use_providers`` the Google adapters are built from settings for any
    collaborator not passed in; tests pass ``use_providers=False``.
    """
    app = Flask(__name__)
    origins = "*" if settings.CORS_ORIGINS == "*" else [o.strip() for o in settings.CORS_ORIGINS.split(",")]
    CORS(app, origins=origins)

    socketio = SocketIO(app, cors_allowed_origins=origins, async_mode="threading")

    if use_providers:
        settings.validate_config()
        transcriber = transcriber if transcriber is not None else build_transcriber()
        synthesizer = synthesizer if synthesizer is not None else build_synthesizer()
        template_generator = template_generator if template_generator is not None else build_template_generator()

    interviews = interviews if interviews is not None else InterviewService(SessionStore())
    protocol = InterviewProtocol(
        socketio,
        interviews,
        template_generator or TemplateGenerator(),
        transcriber=transcriber,
        synthesizer=synthesizer,
        spawn=spawn,
        sleep=sleep,
    )
    register_ws_handlers(socketio, protocol)
    app.extensions["interview_protocol"] = protocol

    app.register_blueprint(interview_bp)

    if start_background_tasks:
        socketio.start_background_task(
            _sweep_sessions, socketio, interviews, settings.SWEEP_INTERVAL_SEC, settings.SESSION_MAX_AGE_SEC,
        )
        if synthesizer is not None:
            socketio.start_background_task(synthesizer.pregenerate, spoken_texts())

    return app, socketio


def _pick_port(default_port: int) -> int:
    cli_port = None
    for a in sys.argv[1:]:
        if a.startswith("--port="):
            try:
                cli_port = int(a.split("=", 1)[1])
            except ValueError:
                cli_port = None
    base = cli_port or default_port
    for p in range(base, base + 20):
        s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            s.bind(("0.0.0.0", p))
            return p
        except OSError:
            continue
        finally:
            s.close()
    return base


def main():
    setup_logging()
    app, socketio = create_app()
    port = _pick_port(int(os.getenv("PORT", settings.PORT)))
    logger.info("Running on http://localhost:%d", port)
    socketio.run(app, host="0.0.0.0", port=port, debug=False, allow_unsafe_werkzeug=True)


if __name__ == "__main__":
    main()
