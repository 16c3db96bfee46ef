import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables
env_path = Path(__file__).parent.parent / ".env"
if env_path.exists():
    load_dotenv(dotenv_path=env_path)


def _flag(name: str, default: str = "0") -> bool:
    return os.getenv(name, default).strip().lower() in ("1", "true", "yes", "on")


# Google Cloud Configuration
PROJECT_ID = os.getenv("GOOGLE_CLOUD_PROJECT", "")
LOCATION = os.getenv("GOOGLE_CLOUD_LOCATION", "us-central1")
GEMINI_MODEL = os.getenv("GEMINI_MODEL", "gemini-2.5-flash-lite")
USE_VERTEX = os.getenv("USE_VERTEX_AI", "0")

# API Configuration
API_KEY = os.getenv("GOOGLE_GENAI_API_KEY") or os.getenv("GOOGLE_API_KEY")

# Speech Configuration
ENABLE_TRANSCRIPTION = _flag("ENABLE_TRANSCRIPTION")
ENABLE_TTS = _flag("ENABLE_TTS")
LANG_STT = os.getenv("STT_LANGUAGE", "en-US")
STT_MODEL = os.getenv("STT_MODEL", "latest_short")
LANG_TTS = os.getenv("GOOGLE_TTS_LANGUAGE", "en-US")
VOICE_NAME = os.getenv("VOICE_NAME", "en-US-Studio-Q")

# Audio streaming
FLUSH_INTERVAL_SEC = 2.0
TRANSCRIPTION_TIMEOUT_SEC = 15.0

# Session lifecycle
DISCONNECT_GRACE_SEC = 5 * 60  # 5 minutes
SWEEP_INTERVAL_SEC = 30 * 60
SESSION_MAX_AGE_SEC = 60 * 60

# Template synthesis: "deterministic" or "generative"
TEMPLATE_STRATEGY = os.getenv("TEMPLATE_STRATEGY", "deterministic").strip().lower()

# Server
CORS_ORIGINS = os.getenv("CORS_ORIGINS", "*")
PORT = int(os.getenv("PORT", "3000"))
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")


def validate_config():
    """Validate required configuration."""
    if TEMPLATE_STRATEGY not in ("deterministic", "generative"):
        raise RuntimeError(f"Unknown TEMPLATE_STRATEGY {TEMPLATE_STRATEGY!r}; use 'deterministic' or 'generative'.")
    if TEMPLATE_STRATEGY == "generative" and USE_VERTEX != "1" and not API_KEY:
        raise RuntimeError("Set GOOGLE_GENAI_API_KEY/GOOGLE_API_KEY or set USE_VERTEX_AI=1 with ADC.")
    if ENABLE_TRANSCRIPTION and not PROJECT_ID:
        raise RuntimeError("ENABLE_TRANSCRIPTION=1 requires GOOGLE_CLOUD_PROJECT.")
