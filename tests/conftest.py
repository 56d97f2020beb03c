import random

import pytest

from engpower.bank import DEFAULT_ITEMS, ItemBank
from engpower.generator import AdaptiveQuestionGenerator
from engpower.models import Category, Question, ReviewItem, User
from engpower.session import GameEngine
from engpower.storage import HistoryRepository, MemoryStore


def make_item(item_id, target, category=Category.PHRASE, source=None):
    return ReviewItem(
        id=item_id,
        source_text=source or f"释义{item_id}",
        target_text=target,
        category=category,
    )


@pytest.fixture
def small_bank():
    """Five items, ids 1-5, three of them phrases."""
    return ItemBank(
        [
            make_item(1, "give up"),
            make_item(2, "take part in"),
            make_item(3, "look forward to"),
            make_item(4, "stop doing", Category.USAGE),
            make_item(5, "used to do", Category.USAGE),
        ]
    )


@pytest.fixture
def default_bank():
    return ItemBank.from_records(DEFAULT_ITEMS)


@pytest.fixture
def rng():
    return random.Random(1234)


@pytest.fixture
def store():
    return MemoryStore()


@pytest.fixture
def repository(store):
    return HistoryRepository(store)


@pytest.fixture
def engine(default_bank, repository):
    generator = AdaptiveQuestionGenerator(default_bank, rng=random.Random(99))
    engine = GameEngine(default_bank, generator, repository)
    engine.load()
    return engine


@pytest.fixture
def question():
    return Question(
        review_id=3,
        prompt="Choose the correct phrase for: 期待",
        context_template="期待 means ______ in English.",
        full_text="期待 means look forward to in English.",
        correct_answer="look forward to",
        options=["give up", "look forward to", "take part in", "stop doing"],
        hint="期待",
    )


@pytest.fixture
def user():
    return User(username="alice", avatar_id=2)
