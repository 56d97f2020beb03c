from typing import List, Optional, Sequence

from .config import settings
from .models import LeaderboardEntry


def sort_by_score(table: Sequence[LeaderboardEntry]) -> List[LeaderboardEntry]:
    # sorted() is stable: equal scores keep their prior relative order.
    return sorted(table, key=lambda e: e.score, reverse=True)


def record_session(
    table: Sequence[LeaderboardEntry], entry: LeaderboardEntry
) -> List[LeaderboardEntry]:
    """Folds a finished session into the table, keeping each user's best entry.

    On a score tie the entry already in the table wins over ``entry``.
    """
    seen = set()
    unique: List[LeaderboardEntry] = []
    for item in sort_by_score([*table, entry]):
        if item.username not in seen:
            seen.add(item.username)
            unique.append(item)
    return unique


def top_entries(
    table: Sequence[LeaderboardEntry], limit: int = settings.LEADERBOARD_SIZE
) -> List[LeaderboardEntry]:
    return sort_by_score(table)[:limit]


def rank_of(table: Sequence[LeaderboardEntry], username: str) -> Optional[int]:
    for position, item in enumerate(sort_by_score(table), start=1):
        if item.username == username:
            return position
    return None
