from .config import settings
from .models import AnswerResult, Question, User


def points_for_streak(
    streak: int,
    base: int = settings.BASE_POINTS,
    step: int = settings.STREAK_STEP,
    bonus: int = settings.STREAK_BONUS,
) -> int:
    """Points for a correct answer given the streak *before* it."""
    return base + (streak // step) * bonus


def apply_answer(user: User, question: Question, chosen: str) -> AnswerResult:
    """Scores ``chosen`` against ``question`` and returns an updated copy of ``user``.

    Anything other than an exact match of the correct answer, including a
    string that is not among the options, counts as incorrect.
    """
    correct = chosen == question.correct_answer

    if correct:
        points = points_for_streak(user.streak)
        streak = user.streak + 1
        updated = user.model_copy(
            update={
                "score": user.score + points,
                "streak": streak,
                "best_streak": max(user.best_streak, streak),
                # Mastered
                "mistakes": [m for m in user.mistakes if m != question.review_id],
            }
        )
        return AnswerResult(user=updated, correct=True, points_awarded=points)

    mistakes = list(user.mistakes)
    if question.review_id not in mistakes:
        mistakes.append(question.review_id)
    updated = user.model_copy(update={"streak": 0, "mistakes": mistakes})
    return AnswerResult(user=updated, correct=False, points_awarded=0)
