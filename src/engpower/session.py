import asyncio
import logging
import uuid
from datetime import datetime, timedelta, timezone
from typing import Callable, Dict, List, Optional, Sequence

from .audio import NullSpeaker, Speaker, speak_safely
from .bank import ItemBank
from .config import settings
from .errors import InvalidUsername, NoActiveQuestion, SessionNotFound
from .generator import QuestionGenerator
from .leaderboard import rank_of, record_session, top_entries
from .models import (
    AnswerOutcome,
    AnswerResult,
    Feedback,
    LeaderboardEntry,
    Question,
    SessionSummary,
    User,
)
from .scoring import apply_answer
from .storage import HistoryRepository

logger = logging.getLogger(__name__)


def _spawn_generation(
    generator: QuestionGenerator, mistakes: Sequence[int]
) -> "asyncio.Task[Question]":
    # Snapshot: later changes to the user's mistakes do not reach this task.
    snapshot = tuple(mistakes)
    return asyncio.create_task(asyncio.to_thread(generator.generate, snapshot))


class GameSession:
    """One player's run: the user snapshot, the open question and a prefetch."""

    def __init__(
        self,
        user: User,
        generator: QuestionGenerator,
        pending_next: Optional["asyncio.Task[Question]"] = None,
        session_id: Optional[str] = None,
    ):
        self.id = session_id or str(uuid.uuid4())
        self.user = user
        self.generator = generator
        self.current: Optional[Question] = None
        self.answered = False
        self.pending_next = pending_next
        self.created_at = datetime.now()
        self.last_active = self.created_at

    def touch(self):
        self.last_active = datetime.now()

    async def next_question(self) -> Question:
        """Returns the open question, or serves the next one.

        A pending prefetch is consumed as-is; otherwise the question is
        generated on demand. Either way a new prefetch is issued afterwards.
        """
        if self.current is not None and not self.answered:
            return self.current

        question = await self._take_pending()
        if question is None:
            question = self.generator.generate(self.user.mistakes)

        self.current = question
        self.answered = False
        self.prefetch()
        return question

    async def _take_pending(self) -> Optional[Question]:
        task, self.pending_next = self.pending_next, None
        if task is None:
            return None
        if task.get_loop() is not asyncio.get_running_loop():
            logger.warning(f"Session {self.id}: dropping prefetch from another event loop")
            return None
        try:
            return await task
        except Exception as e:
            logger.error(f"Session {self.id}: prefetch failed: {e}")
            return None

    def prefetch(self):
        """Starts generating the next question unless one is already in flight."""
        if self.pending_next is None:
            self.pending_next = _spawn_generation(self.generator, self.user.mistakes)

    def answer(self, chosen: str) -> AnswerResult:
        if self.current is None or self.answered:
            raise NoActiveQuestion(f"Session {self.id} has no open question")
        result = apply_answer(self.user, self.current, chosen)
        self.user = result.user
        self.answered = True
        return result

    def discard(self):
        """Drops an unconsumed prefetch."""
        if self.pending_next is not None:
            self.pending_next.cancel()
            self.pending_next = None


class GameEngine:
    """Owns the shared state: bank, leaderboard, mistake history and sessions."""

    def __init__(
        self,
        bank: ItemBank,
        generator: QuestionGenerator,
        repository: HistoryRepository,
        speaker: Optional[Speaker] = None,
        session_timeout_minutes: int = settings.SESSION_TIMEOUT_MINUTES,
        leaderboard_size: int = settings.LEADERBOARD_SIZE,
        clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc),
    ):
        self.bank = bank
        self.generator = generator
        self.repository = repository
        self.speaker = speaker or NullSpeaker()
        self.session_timeout = timedelta(minutes=session_timeout_minutes)
        self.leaderboard_size = leaderboard_size
        self.clock = clock

        self.leaderboard: List[LeaderboardEntry] = []
        self.mistake_history: Dict[str, List[int]] = {}
        self.sessions: Dict[str, GameSession] = {}
        self._warm_question: Optional["asyncio.Task[Question]"] = None

    # --- Lifecycle ---
    def load(self):
        self.leaderboard = self.repository.load_leaderboard()
        self.mistake_history = self.repository.load_mistakes()
        logger.info(
            f"Loaded {len(self.leaderboard)} leaderboard entries and "
            f"mistake history for {len(self.mistake_history)} users"
        )

    def warm_up(self):
        """Prepares a first question before anyone logs in. Needs a running loop."""
        if self._warm_question is None:
            self._warm_question = _spawn_generation(self.generator, ())

    def close(self):
        for session in self.sessions.values():
            session.discard()
        self.sessions.clear()
        if self._warm_question is not None:
            self._warm_question.cancel()
            self._warm_question = None
        self.repository.flush()

    # --- Sessions ---
    async def login(self, username: str, avatar_id: int = 0) -> GameSession:
        username = (username or "").strip()
        if not username:
            raise InvalidUsername("Username must not be empty")

        self.purge_expired()
        user = User(
            username=username,
            avatar_id=avatar_id,
            mistakes=list(self.mistake_history.get(username, [])),
        )
        # The warm question was built without mistakes, which fits any user.
        pending, self._warm_question = self._warm_question, None
        session = GameSession(user, self.generator, pending_next=pending)
        self.sessions[session.id] = session
        self.warm_up()

        logger.info(
            f"New session: {session.id} [User: {username}, "
            f"Mistakes: {len(user.mistakes)}]"
        )
        return session

    def _expired(self, session: GameSession, now: datetime) -> bool:
        return now - session.last_active > self.session_timeout

    def _drop(self, session: GameSession):
        logger.info(f"Session {session.id} expired")
        session.discard()
        del self.sessions[session.id]

    def purge_expired(self) -> int:
        """Drops sessions idle past the timeout. Nothing is recorded for them."""
        now = datetime.now()
        expired = [s for s in self.sessions.values() if self._expired(s, now)]
        for session in expired:
            self._drop(session)
        return len(expired)

    def get_session(self, session_id: Optional[str]) -> GameSession:
        session = self.sessions.get(session_id) if session_id else None
        if session is None:
            raise SessionNotFound("Session invalid")
        if self._expired(session, datetime.now()):
            self._drop(session)
            raise SessionNotFound("Session expired")
        session.touch()
        return session

    async def next_question(self, session_id: Optional[str]) -> Question:
        return await self.get_session(session_id).next_question()

    async def answer(self, session_id: Optional[str], chosen: str) -> AnswerOutcome:
        session = self.get_session(session_id)
        result = session.answer(chosen)
        question = session.current

        self.mistake_history[session.user.username] = list(session.user.mistakes)
        self.repository.save_mistakes(self.mistake_history)

        await speak_safely(self.speaker, question.full_text)

        return AnswerOutcome(
            correct=result.correct,
            points_awarded=result.points_awarded,
            correct_answer=question.correct_answer,
            feedback=Feedback.CORRECT if result.correct else Feedback.INCORRECT,
            user=result.user,
        )

    def end_session(self, session_id: Optional[str]) -> SessionSummary:
        session = self.get_session(session_id)
        session.discard()
        del self.sessions[session.id]

        user = session.user
        entry = LeaderboardEntry(
            username=user.username,
            score=user.score,
            avatar_id=user.avatar_id,
            timestamp=self.clock().isoformat(),
        )
        self.leaderboard = record_session(self.leaderboard, entry)
        self.mistake_history[user.username] = list(user.mistakes)
        self.repository.save_leaderboard(self.leaderboard)
        self.repository.save_mistakes(self.mistake_history)

        logger.info(
            f"Session {session.id} ended [User: {user.username}, Score: {user.score}, "
            f"Best streak: {user.best_streak}]"
        )
        return SessionSummary(
            entry=entry,
            rank=rank_of(self.leaderboard, user.username),
            leaderboard=self.top(),
        )

    def top(self, limit: Optional[int] = None) -> List[LeaderboardEntry]:
        return top_entries(self.leaderboard, limit or self.leaderboard_size)
