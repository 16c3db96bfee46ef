"""Error taxonomy shared by the state machine, adapters and the socket layer."""


class VoiceBuilderError(Exception):
    """Base error. ``recoverable`` tells the client whether to retry the step or restart."""

    recoverable = True

    def __init__(self, message: str = "", recoverable=None):
        super().__init__(message)
        self.message = message or self.__class__.__name__
        if recoverable is not None:
            self.recoverable = recoverable


class SessionNotFound(VoiceBuilderError):
    recoverable = False

    def __init__(self, session_id: str):
        super().__init__(f"Session not found: {session_id}")
        self.session_id = session_id


class InvalidTransition(VoiceBuilderError):
    """Operation not allowed in the session's current stage."""


class TranscriptionUnavailable(VoiceBuilderError):
    """Speech-to-text failed or is disabled; the client falls back to local recognition."""

    RATE_LIMITED = "rate_limited"
    AUTH_FAILED = "auth_failed"
    CONNECTION_FAILED = "connection_failed"
    OTHER = "other"

    _RETRYABLE = (RATE_LIMITED, CONNECTION_FAILED)

    def __init__(self, message: str, reason: str = OTHER):
        super().__init__(message)
        self.reason = reason

    @property
    def retryable(self) -> bool:
        return self.reason in self._RETRYABLE


class SynthesisFailed(VoiceBuilderError):
    """Template synthesis produced nothing. Answers are kept so the client can retry."""

    recoverable = False


class TransportDisconnect(VoiceBuilderError):
    """The connection that owns a session is gone."""
