import logging
import random
import threading
from abc import ABC, abstractmethod
from typing import Collection, List, Optional

from .bank import ItemBank
from .config import settings
from .errors import BankError
from .models import Question, ReviewItem

logger = logging.getLogger(__name__)

BLANK = "______"


# --- Strategy Pattern: Question Generators ---
class QuestionGenerator(ABC):
    """Builds one multiple-choice question per call from a validated bank."""

    def __init__(
        self,
        bank: ItemBank,
        rng: Optional[random.Random] = None,
        distractor_count: int = settings.DISTRACTOR_COUNT,
    ):
        self.bank = bank
        self.rng = rng or random.Random()
        self.distractor_count = distractor_count
        # Prefetches for several sessions may run in worker threads.
        self._lock = threading.Lock()

    @abstractmethod
    def pick_focus(self, mistakes: Collection[int]) -> ReviewItem:
        pass

    def generate(self, mistakes: Collection[int] = ()) -> Question:
        with self._lock:
            item = self.pick_focus(mistakes)
            options = self._generate_options(item)
        return build_question(item, options)

    def _generate_options(self, item: ReviewItem) -> List[str]:
        """Correct answer plus distractors, shuffled."""
        distractors = self._pick_distractors(item)
        options = [item.target_text] + distractors
        self.rng.shuffle(options)
        return options

    def _pick_distractors(self, item: ReviewItem) -> List[str]:
        same_category = self.bank.same_category(item)
        if len(same_category) >= self.distractor_count:
            pools = [same_category, self.bank.others(item)]
        else:
            pools = [self.bank.others(item)]

        chosen: List[str] = []
        for pool in pools:
            # Draw without replacement, rejecting text collisions.
            for candidate in self.rng.sample(pool, len(pool)):
                text = candidate.target_text
                if text == item.target_text or text in chosen:
                    continue
                chosen.append(text)
                if len(chosen) == self.distractor_count:
                    return chosen
        raise BankError(
            f"Cannot find {self.distractor_count} distinct distractors for item {item.id}"
        )


class AdaptiveQuestionGenerator(QuestionGenerator):
    """Reviews a past mistake with a fixed probability, otherwise picks at random."""

    def __init__(
        self,
        bank: ItemBank,
        rng: Optional[random.Random] = None,
        review_probability: float = settings.REVIEW_PROBABILITY,
        **kwargs,
    ):
        super().__init__(bank, rng=rng, **kwargs)
        self.review_probability = review_probability

    def pick_focus(self, mistakes: Collection[int]) -> ReviewItem:
        if mistakes and self.rng.random() < self.review_probability:
            mistake_id = self.rng.choice(sorted(mistakes))
            item = self.bank.get(mistake_id)
            if item is not None:
                return item
            logger.warning(f"Mistake id {mistake_id} is not in the item bank")
        return self.bank.random_item(self.rng)


class RandomQuestionGenerator(QuestionGenerator):
    """Standard mode: every item is equally likely, mistakes are ignored."""

    def pick_focus(self, mistakes: Collection[int]) -> ReviewItem:
        return self.bank.random_item(self.rng)


class QuestionGeneratorFactory:
    """Factory to select the appropriate generator."""

    @staticmethod
    def create(
        mode: str, bank: ItemBank, rng: Optional[random.Random] = None
    ) -> QuestionGenerator:
        if mode == "standard":
            return RandomQuestionGenerator(bank, rng=rng)
        if mode != "adaptive":
            logger.warning(f"Unknown generator mode {mode!r}, using adaptive")
        return AdaptiveQuestionGenerator(bank, rng=rng)


def build_question(item: ReviewItem, options: List[str]) -> Question:
    template = f"{item.source_text} means {BLANK} in English."
    return Question(
        review_id=item.id,
        prompt=f"Choose the correct phrase for: {item.source_text}",
        context_template=template,
        full_text=template.replace(BLANK, item.target_text),
        correct_answer=item.target_text,
        options=options,
        hint=item.source_text,
    )
