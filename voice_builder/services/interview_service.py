"""Interview state machine over the session store."""
import logging
import time
from collections import OrderedDict
from typing import Callable, Dict, Optional, Sequence

from voice_builder.errors import InvalidTransition
from voice_builder.models.interview_state import Answer, InterviewSession, InterviewStage
from voice_builder.models.session_store import SessionStore
from voice_builder.prompts.questions import INTERVIEW_QUESTIONS, Question

logger = logging.getLogger(__name__)


class InterviewService:
    """Drives sessions through WELCOME -> QUESTIONING -> GENERATING -> COMPLETE.

    Question indices are 0-based everywhere: protocol ``questionIndex``,
    ``responses`` keys and synthesis input all use the same numbering.
    """

    def __init__(
        self,
        store: Optional[SessionStore] = None,
        questions: Sequence[Question] = INTERVIEW_QUESTIONS,
        clock: Callable[[], float] = time.time,
    ):
        self.store = store if store is not None else SessionStore(clock=clock)
        self.questions = tuple(questions)
        self._clock = clock

    @property
    def total(self) -> int:
        return len(self.questions)

    def create_session(self) -> InterviewSession:
        session = self.store.add(InterviewSession(start_time=self._clock()))
        logger.info("Created session %s", session.session_id)
        return session

    def get_session(self, session_id: str) -> InterviewSession:
        return self.store.get(session_id)

    def has_session(self, session_id: str) -> bool:
        return session_id in self.store

    def start_interview(self, session_id: str) -> None:
        session = self.store.get(session_id)
        with session.lock:
            if session.stage != InterviewStage.WELCOME:
                raise InvalidTransition(f"Cannot start interview from stage {session.stage.value}")
            session.stage = InterviewStage.QUESTIONING
            session.current_question_index = 0
        logger.info("Started interview for session %s", session_id)

    def current_question(self, session_id: str) -> Question:
        session = self.store.get(session_id)
        with session.lock:
            if session.stage != InterviewStage.QUESTIONING:
                raise InvalidTransition(f"No current question in stage {session.stage.value}")
            return self.questions[session.current_question_index]

    def current_index(self, session_id: str) -> Optional[int]:
        """Index of the question being answered, or None outside QUESTIONING."""
        session = self.store.get(session_id)
        with session.lock:
            if session.stage != InterviewStage.QUESTIONING:
                return None
            return session.current_question_index

    def _question_at(self, question_index: int) -> Question:
        if not 0 <= question_index < self.total:
            raise InvalidTransition(f"Question index {question_index} out of range 0..{self.total - 1}")
        return self.questions[question_index]

    def save_response(self, session_id: str, question_index: int, transcript: str, confidence: float = 1.0) -> Answer:
        """Record the confirmed answer for ``question_index``, replacing any earlier one."""
        session = self.store.get(session_id)
        question = self._question_at(question_index)
        with session.lock:
            if session.stage != InterviewStage.QUESTIONING:
                raise InvalidTransition(f"Cannot save a response in stage {session.stage.value}")
            previous = session.responses.get(question_index)
            raw = previous.raw_transcript if previous is not None and not previous.is_final else transcript
            answer = Answer(
                question_id=question.id,
                question=question.text,
                raw_transcript=raw,
                confirmed_answer=transcript,
                confidence=confidence,
                timestamp=self._clock(),
            )
            session.responses[question_index] = answer
        logger.info("Saved response for Q%d in %s: %s", question_index + 1, session_id, transcript[:50])
        return answer

    def record_transcript(self, session_id: str, question_index: int, transcript: str, confidence: float) -> None:
        """Keep a provisional server transcript. Never overrides a confirmed answer."""
        session = self.store.get(session_id)
        question = self._question_at(question_index)
        with session.lock:
            existing = session.responses.get(question_index)
            if existing is not None and existing.is_final:
                return
            session.responses[question_index] = Answer(
                question_id=question.id,
                question=question.text,
                raw_transcript=transcript,
                confidence=confidence,
                timestamp=self._clock(),
            )

    def advance(self, session_id: str) -> bool:
        """Move past the current question. Returns False once every question is answered."""
        session = self.store.get(session_id)
        with session.lock:
            if session.stage != InterviewStage.QUESTIONING:
                raise InvalidTransition(f"Cannot advance from stage {session.stage.value}")
            session.current_question_index += 1
            if session.current_question_index >= self.total:
                session.current_question_index = self.total
                session.stage = InterviewStage.GENERATING
                session.end_time = self._clock()
                logger.info("Interview questions completed for session %s", session_id)
                return False
            index = session.current_question_index
        logger.info("Session %s moved to question %d", session_id, index + 1)
        return True

    def progress(self, session_id: str) -> Dict[str, int]:
        session = self.store.get(session_id)
        with session.lock:
            current = min(session.current_question_index + 1, self.total)
        return {"current": current, "total": self.total}

    def all_responses(self, session_id: str) -> "OrderedDict[int, Answer]":
        """Confirmed answers in question order."""
        session = self.store.get(session_id)
        with session.lock:
            return OrderedDict(
                (index, session.responses[index])
                for index in sorted(session.responses)
                if session.responses[index].is_final
            )

    def stage(self, session_id: str) -> InterviewStage:
        session = self.store.get(session_id)
        with session.lock:
            return session.stage

    def complete(self, session_id: str, formatted_template: str) -> None:
        session = self.store.get(session_id)
        with session.lock:
            if session.stage != InterviewStage.GENERATING:
                raise InvalidTransition(f"Cannot complete from stage {session.stage.value}")
            session.formatted_template = formatted_template
            session.stage = InterviewStage.COMPLETE
        logger.info("Template stored for session %s", session_id)

    def fail(self, session_id: str) -> None:
        session = self.store.find(session_id)
        if session is None:
            return
        with session.lock:
            session.stage = InterviewStage.ERROR
        logger.warning("Session %s moved to error stage", session_id)

    def delete_session(self, session_id: str) -> None:
        if self.store.remove(session_id):
            logger.info("Deleted session %s", session_id)

    def sweep_expired(self, max_age: float):
        return self.store.sweep_expired(max_age)
