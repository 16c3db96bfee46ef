import pytest

from voice_builder.app import create_app
from voice_builder.errors import TranscriptionUnavailable
from voice_builder.services.interview_service import InterviewService
from voice_builder.services.speech_service import TranscriptionResult


class FakeClock:
    def __init__(self, start=1000.0):
        self.now = start
        self.sleeps = []

    def __call__(self):
        return self.now

    def advance(self, seconds):
        self.now += seconds

    def sleep(self, seconds):
        self.sleeps.append(seconds)
        self.advance(seconds)


class DeferredSpawner:
    """Collects background tasks so a test decides when they run."""

    def __init__(self):
        self.tasks = []

    def __call__(self, fn, *args):
        self.tasks.append((fn, args))

    def run_all(self):
        while self.tasks:
            fn, args = self.tasks.pop(0)
            fn(*args)


def run_now(fn, *args):
    fn(*args)


class FakeTranscriber:
    def __init__(self, transcript="hello world", confidence=0.92, language="en-us"):
        self.transcript = transcript
        self.confidence = confidence
        self.language = language
        self.calls = []

    def transcribe(self, audio, fmt="webm"):
        self.calls.append((audio, fmt))
        return TranscriptionResult(transcript=self.transcript, confidence=self.confidence, language=self.language)


class FailingTranscriber:
    def __init__(self, reason=TranscriptionUnavailable.CONNECTION_FAILED):
        self.reason = reason
        self.calls = []

    def transcribe(self, audio, fmt="webm"):
        self.calls.append((audio, fmt))
        raise TranscriptionUnavailable("provider down", reason=self.reason)


ANSWERS = [
    "A tutoring app for high schoolers",
    "Students pick a topic. Then the app asks a warm-up question! Next it explains the concept. Finally it gives practice problems",
    "Friendly and encouraging, asking questions rather than giving answers",
    "Students leave able to solve one new problem on their own",
    "Do not give away final answers. Avoid off-topic chat. It must only discuss math",
]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def interviews(clock):
    return InterviewService(clock=clock)


@pytest.fixture
def make_client():
    clients = []

    def _make(**kwargs):
        kwargs.setdefault("use_providers", False)
        kwargs.setdefault("start_background_tasks", False)
        kwargs.setdefault("spawn", run_now)
        kwargs.setdefault("sleep", lambda seconds: None)
        app, socketio = create_app(**kwargs)
        client = socketio.test_client(app)
        clients.append(client)
        return app, socketio, client

    yield _make
    for client in clients:
        if client.is_connected():
            client.disconnect()


def events(received, name):
    return [r["args"][0] if r["args"] else None for r in received if r["name"] == name]
