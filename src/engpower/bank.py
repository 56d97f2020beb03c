import logging
import os
import random
from typing import Dict, Iterable, List, Optional

import pandas as pd

from .errors import BankError
from .models import Category, ReviewItem

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("id", "english", "chinese", "type")

DEFAULT_ITEMS: List[Dict] = [
    {"id": 1, "english": "add...to...", "chinese": "把……加到……", "type": "phrase"},
    {"id": 2, "english": "take part in", "chinese": "参加", "type": "phrase"},
    {"id": 3, "english": "look forward to", "chinese": "期待", "type": "phrase"},
    {"id": 4, "english": "give up", "chinese": "放弃", "type": "phrase"},
    {"id": 5, "english": "be good at", "chinese": "擅长", "type": "phrase"},
    {"id": 6, "english": "make friends with", "chinese": "与……交朋友", "type": "phrase"},
    {"id": 7, "english": "take care of", "chinese": "照顾", "type": "phrase"},
    {"id": 8, "english": "in front of", "chinese": "在……前面", "type": "phrase"},
    {"id": 9, "english": "pay attention to", "chinese": "注意", "type": "phrase"},
    {"id": 10, "english": "be afraid of", "chinese": "害怕", "type": "phrase"},
    {"id": 11, "english": "spend time doing", "chinese": "花时间做某事", "type": "usage"},
    {"id": 12, "english": "stop to do", "chinese": "停下来去做另一件事", "type": "usage"},
    {"id": 13, "english": "stop doing", "chinese": "停止正在做的事", "type": "usage"},
    {"id": 14, "english": "used to do", "chinese": "过去常常做某事", "type": "usage"},
    {"id": 15, "english": "be used to doing", "chinese": "习惯于做某事", "type": "usage"},
    {"id": 16, "english": "too...to...", "chinese": "太……而不能……", "type": "usage"},
    {"id": 17, "english": "so...that...", "chinese": "如此……以至于……", "type": "usage"},
    {"id": 18, "english": "it takes sb. time to do", "chinese": "做某事花费某人时间", "type": "usage"},
]


class ItemBank:
    """Read-only collection of review items, validated on construction."""

    def __init__(self, items: Iterable[ReviewItem]):
        self.items: List[ReviewItem] = list(items)
        self._by_id: Dict[int, ReviewItem] = {}
        self._by_category: Dict[Category, List[ReviewItem]] = {}
        for item in self.items:
            if item.id in self._by_id:
                raise BankError(f"Duplicate review item id {item.id}")
            self._by_id[item.id] = item
            self._by_category.setdefault(item.category, []).append(item)
        self.validate()

    def validate(self):
        if len(self.items) < 4:
            raise BankError(
                f"Item bank needs at least 4 items, found {len(self.items)}"
            )
        for item in self.items:
            if not item.source_text.strip() or not item.target_text.strip():
                raise BankError(f"Review item {item.id} has empty text")
        # Any item then has at least 3 other distinct answers to draw from.
        distinct_targets = {item.target_text for item in self.items}
        if len(distinct_targets) < 4:
            raise BankError(
                f"Item bank needs at least 4 distinct target texts, "
                f"found {len(distinct_targets)}"
            )

    def __len__(self) -> int:
        return len(self.items)

    def __contains__(self, item_id: int) -> bool:
        return item_id in self._by_id

    def get(self, item_id: int) -> Optional[ReviewItem]:
        return self._by_id.get(item_id)

    def random_item(self, rng: random.Random) -> ReviewItem:
        return rng.choice(self.items)

    def same_category(self, item: ReviewItem) -> List[ReviewItem]:
        """Items sharing the category of ``item``, excluding ``item`` itself."""
        return [i for i in self._by_category.get(item.category, []) if i.id != item.id]

    def others(self, item: ReviewItem) -> List[ReviewItem]:
        return [i for i in self.items if i.id != item.id]

    @classmethod
    def from_records(cls, records: Iterable[Dict]) -> "ItemBank":
        items = []
        for record in records:
            try:
                items.append(
                    ReviewItem(
                        id=int(record["id"]),
                        source_text=str(record["chinese"]).strip(),
                        target_text=str(record["english"]).strip(),
                        category=Category(str(record["type"]).strip()),
                    )
                )
            except (KeyError, TypeError, ValueError) as e:
                logger.error(f"Skipping malformed review item {record!r}: {e}")
        return cls(items)

    @classmethod
    def from_csv(cls, file_path: str) -> "ItemBank":
        """Loads the bank from a CSV file, or the built-in table if it is missing."""
        if not os.path.exists(file_path):
            logger.warning(f"{file_path} not found. Using built-in review items.")
            return cls.from_records(DEFAULT_ITEMS)

        df = pd.read_csv(file_path, encoding="utf-8")
        missing = [c for c in REQUIRED_COLUMNS if c not in df.columns]
        if missing:
            raise BankError(f"{file_path} is missing columns: {', '.join(missing)}")
        complete = df.dropna(subset=list(REQUIRED_COLUMNS))
        if len(complete) < len(df):
            logger.error(
                f"Skipping {len(df) - len(complete)} incomplete rows in {file_path}"
            )
        bank = cls.from_records(complete.to_dict("records"))
        logger.info(f"Loaded {len(bank)} review items from {file_path}")
        return bank
