from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class Category(str, Enum):
    PHRASE = "phrase"
    USAGE = "usage"


class Feedback(str, Enum):
    NONE = "none"
    CORRECT = "correct"
    INCORRECT = "incorrect"


# --- Models ---
class ReviewItem(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: int
    source_text: str
    target_text: str
    category: Category


class Question(BaseModel):
    review_id: int
    prompt: str
    context_template: str
    full_text: str
    correct_answer: str
    options: List[str]
    hint: str


class User(BaseModel):
    username: str
    score: int = Field(default=0, ge=0)
    streak: int = Field(default=0, ge=0)
    best_streak: int = Field(default=0, ge=0)
    avatar_id: int = 0
    mistakes: List[int] = Field(default_factory=list)

    @field_validator("username")
    @classmethod
    def _trimmed(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("username must not be empty")
        return value


class LeaderboardEntry(BaseModel):
    username: str
    score: int
    avatar_id: int = 0
    timestamp: str


class AnswerResult(BaseModel):
    user: User
    correct: bool
    points_awarded: int


# --- Request / response bodies ---
class LoginRequest(BaseModel):
    username: str
    avatar_id: int = 0


class AnswerRequest(BaseModel):
    chosen: str


class AnswerOutcome(BaseModel):
    correct: bool
    points_awarded: int
    correct_answer: str
    feedback: Feedback
    user: User


class SessionSummary(BaseModel):
    entry: LeaderboardEntry
    rank: Optional[int]
    leaderboard: List[LeaderboardEntry]
