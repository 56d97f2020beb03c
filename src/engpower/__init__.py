from .bank import ItemBank
from .generator import AdaptiveQuestionGenerator, QuestionGeneratorFactory
from .leaderboard import record_session
from .models import LeaderboardEntry, Question, ReviewItem, User
from .scoring import apply_answer

__all__ = [
    "AdaptiveQuestionGenerator",
    "ItemBank",
    "LeaderboardEntry",
    "Question",
    "QuestionGeneratorFactory",
    "ReviewItem",
    "User",
    "apply_answer",
    "record_session",
]
