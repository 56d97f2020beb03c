import random

import pytest

from engpower.bank import ItemBank
from engpower.generator import (
    BLANK,
    AdaptiveQuestionGenerator,
    QuestionGeneratorFactory,
    RandomQuestionGenerator,
    build_question,
)
from engpower.models import Category

from .conftest import make_item


def assert_valid(question, bank):
    assert len(question.options) == 4
    assert len(set(question.options)) == 4
    assert question.options.count(question.correct_answer) == 1
    assert bank.get(question.review_id).target_text == question.correct_answer


@pytest.mark.parametrize("seed", range(25))
def test_options_are_four_distinct_with_one_answer(default_bank, seed):
    generator = AdaptiveQuestionGenerator(default_bank, rng=random.Random(seed))
    for _ in range(20):
        assert_valid(generator.generate([1, 5, 12]), default_bank)


def test_small_bank_widens_the_pool(small_bank, rng):
    generator = AdaptiveQuestionGenerator(small_bank, rng=rng)
    for _ in range(200):
        assert_valid(generator.generate(), small_bank)


def test_duplicate_answer_texts_never_repeat():
    bank = ItemBank(
        [
            make_item(1, "give up"),
            make_item(2, "give up"),
            make_item(3, "take part in"),
            make_item(4, "take part in"),
            make_item(5, "look forward to"),
            make_item(6, "be good at"),
        ]
    )
    generator = AdaptiveQuestionGenerator(bank, rng=random.Random(7))
    for _ in range(200):
        assert_valid(generator.generate(), bank)


def test_distractors_prefer_the_same_category(default_bank, rng):
    generator = AdaptiveQuestionGenerator(default_bank, rng=rng, review_probability=1.0)
    usage_texts = {
        i.target_text for i in default_bank.items if i.category == Category.USAGE
    }
    for _ in range(50):
        question = generator.generate([13])
        assert question.review_id == 13
        assert set(question.options) <= usage_texts


def test_review_branch_picks_the_mistake(small_bank, rng):
    generator = AdaptiveQuestionGenerator(small_bank, rng=rng, review_probability=1.0)
    question = generator.generate({3})
    assert question.review_id == 3
    assert question.correct_answer == small_bank.get(3).target_text


def test_review_branch_falls_back_on_unknown_id(small_bank, rng):
    generator = AdaptiveQuestionGenerator(small_bank, rng=rng, review_probability=1.0)
    for _ in range(20):
        question = generator.generate([999])
        assert question.review_id in small_bank


def test_no_review_without_mistakes(small_bank):
    generator = AdaptiveQuestionGenerator(
        small_bank, rng=random.Random(3), review_probability=1.0
    )
    seen = {generator.generate([]).review_id for _ in range(200)}
    assert seen == {1, 2, 3, 4, 5}


def test_review_probability_weights_mistakes(default_bank):
    generator = AdaptiveQuestionGenerator(default_bank, rng=random.Random(2024))
    draws = 2000
    hits = sum(generator.generate([1]).review_id == 1 for _ in range(draws))
    # 0.4 from the review branch plus 0.6 / 18 from the uniform one.
    assert 0.38 < hits / draws < 0.49


def test_standard_mode_ignores_mistakes(default_bank):
    with_mistakes = RandomQuestionGenerator(default_bank, rng=random.Random(5))
    without = RandomQuestionGenerator(default_bank, rng=random.Random(5))
    for _ in range(30):
        assert with_mistakes.generate([1, 2]) == without.generate([])


def test_factory(default_bank):
    assert isinstance(
        QuestionGeneratorFactory.create("standard", default_bank),
        RandomQuestionGenerator,
    )
    assert isinstance(
        QuestionGeneratorFactory.create("adaptive", default_bank),
        AdaptiveQuestionGenerator,
    )
    assert isinstance(
        QuestionGeneratorFactory.create("hard", default_bank),
        AdaptiveQuestionGenerator,
    )


def test_question_text_fields(small_bank):
    item = small_bank.get(3)
    question = build_question(item, ["a", "b", "c", item.target_text])
    assert question.hint == item.source_text
    assert question.prompt == f"Choose the correct phrase for: {item.source_text}"
    assert question.context_template == f"{item.source_text} means {BLANK} in English."
    assert question.full_text == f"{item.source_text} means look forward to in English."
    assert BLANK not in question.full_text


def test_same_seed_same_question(default_bank):
    a = AdaptiveQuestionGenerator(default_bank, rng=random.Random(11))
    b = AdaptiveQuestionGenerator(default_bank, rng=random.Random(11))
    assert a.generate([4]) == b.generate([4])
