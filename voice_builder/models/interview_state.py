import threading
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, Optional


class InterviewStage(str, Enum):
    WELCOME = "welcome"
    QUESTIONING = "questioning"
    GENERATING = "generating"
    COMPLETE = "complete"
    ERROR = "error"


@dataclass
class Answer:
    """One question's response. Only ``confirmed_answer`` feeds template synthesis."""

    question_id: str
    question: str
    raw_transcript: str
    confirmed_answer: Optional[str] = None
    confidence: float = 1.0
    timestamp: float = field(default_factory=time.time)

    @property
    def is_final(self) -> bool:
        return self.confirmed_answer is not None


@dataclass
class InterviewSession:
    """Per-session interview state. Mutate only while holding ``lock``."""

    session_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    stage: InterviewStage = InterviewStage.WELCOME
    current_question_index: int = 0
    responses: Dict[int, Answer] = field(default_factory=dict)
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None
    formatted_template: Optional[str] = None
    lock: threading.RLock = field(default_factory=threading.RLock, repr=False, compare=False)

    def age(self, now: Optional[float] = None) -> float:
        return (now if now is not None else time.time()) - self.start_time
