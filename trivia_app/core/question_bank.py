"""Question bank: category registry, JSON pack loading and conversion to engine questions.

Pack format::

    {
      "categories": [
        {
          "meta": {"id": "science", "name": "Science", "emoji": "...", "color": "#4D96FF"},
          "questions": [
            {"q": "Question text", "choices": ["A", "B", "C", "D"], "answer": 1,
             "explanation": "optional", "deepDive": "optional"}
          ]
        }
      ]
    }

Loading a pack whose category id is already registered appends its questions
to that category, so positions of earlier questions (and their history keys)
stay stable.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
import random
from typing import Any

from trivia_app.constants.round_constants import QUESTIONS_PER_ROUND
from trivia_app.core.models import CategoryMeta, CategoryQuestions, Question, RawQuestion

logger = logging.getLogger(__name__)

SAMPLE_PACK_PATH = Path(__file__).resolve().parent.parent / "data" / "sample_pack.json"


class QuestionBankError(Exception):
    """Raised when a question pack cannot be parsed."""


def convert_question(raw: RawQuestion, rng: random.Random | None = None) -> Question:
    """Turn a pack question into an engine ``Question`` with shuffled choices."""
    source = rng or random
    order = list(range(len(raw.choices)))
    source.shuffle(order)
    return Question(
        prompt=raw.text,
        choices=tuple(raw.choices[i] for i in order),
        correct_index=order.index(raw.answer),
        explanation=raw.explanation,
        deep_dive=raw.deep_dive,
    )


class QuestionBank:
    """Registry of categories and their raw questions, in load order."""

    def __init__(self, rng: random.Random | None = None) -> None:
        self._categories: dict[str, CategoryQuestions] = {}
        self._rng = rng or random.Random()

    @classmethod
    def from_sample_pack(cls, rng: random.Random | None = None) -> QuestionBank:
        bank = cls(rng=rng)
        bank.load_pack_file(SAMPLE_PACK_PATH)
        return bank

    # --- Loading ---

    def load_pack_file(self, file_path: Path) -> int:
        """Load a JSON pack from disk and return the number of new categories."""
        try:
            data = json.loads(file_path.read_text(encoding="utf-8"))
        except OSError as exc:
            raise QuestionBankError(f"Could not read question pack {file_path}: {exc}") from exc
        except json.JSONDecodeError as exc:
            raise QuestionBankError(f"Question pack {file_path} is not valid JSON: {exc}") from exc
        added = self.load_pack(data)
        logger.info("Loaded question pack %s (%d new categories)", file_path.name, added)
        return added

    def load_pack(self, data: Any) -> int:
        if not isinstance(data, dict) or not isinstance(data.get("categories"), list):
            raise QuestionBankError("Question pack must contain a 'categories' list.")

        # Parse everything first so a bad pack leaves the bank untouched.
        parsed = [_parse_category(entry) for entry in data["categories"]]

        added = 0
        for category in parsed:
            existing = self._categories.get(category.meta.id)
            if existing is None:
                self._categories[category.meta.id] = category
                added += 1
            else:
                self._categories[category.meta.id] = CategoryQuestions(
                    meta=existing.meta,
                    questions=existing.questions + category.questions,
                )
        return added

    def add_category(self, meta: CategoryMeta, questions: list[RawQuestion]) -> None:
        if meta.id in self._categories:
            raise ValueError(f"Category '{meta.id}' is already registered.")
        self._categories[meta.id] = CategoryQuestions(meta=meta, questions=tuple(questions))

    # --- Queries ---

    def get_categories(self) -> list[CategoryMeta]:
        return [category.meta for category in self._categories.values()]

    def get_category_meta(self, category_id: str) -> CategoryMeta | None:
        category = self._categories.get(category_id)
        return category.meta if category else None

    def has_category(self, category_id: str) -> bool:
        return category_id in self._categories

    def get_questions(self, category_id: str, count: int = QUESTIONS_PER_ROUND) -> list[Question]:
        """Return up to ``count`` random questions of one category, converted for play."""
        return [question for _, question in self.get_indexed_questions(category_id, count)]

    def get_indexed_questions(
        self,
        category_id: str,
        count: int = QUESTIONS_PER_ROUND,
    ) -> list[tuple[int, Question]]:
        """Like ``get_questions`` but keeps each question's position in its category."""
        category = self._categories.get(category_id)
        if category is None:
            return []
        positions = list(range(len(category.questions)))
        self._rng.shuffle(positions)
        return [
            (index, convert_question(category.questions[index], self._rng))
            for index in positions[:max(0, count)]
        ]

    def get_all_questions(self) -> list[Question]:
        """Every question of every category in bank order, converted for play."""
        return [
            convert_question(raw, self._rng)
            for category in self._categories.values()
            for raw in category.questions
        ]

    def get_all_raw_questions(self) -> list[tuple[str, int, RawQuestion]]:
        """Every raw question with its category id and position, in bank order."""
        return [
            (category.meta.id, index, raw)
            for category in self._categories.values()
            for index, raw in enumerate(category.questions)
        ]

    def get_all_categories_with_questions(self) -> list[CategoryQuestions]:
        return list(self._categories.values())

    def convert(self, raw: RawQuestion) -> Question:
        return convert_question(raw, self._rng)


def _parse_category(entry: Any) -> CategoryQuestions:
    if not isinstance(entry, dict):
        raise QuestionBankError("Each category entry must be an object.")
    meta_raw = entry.get("meta")
    if not isinstance(meta_raw, dict):
        raise QuestionBankError("Category entry is missing its 'meta' object.")
    category_id = str(meta_raw.get("id", "")).strip()
    if not category_id:
        raise QuestionBankError("Category id must not be empty.")

    meta = CategoryMeta(
        id=category_id,
        name=str(meta_raw.get("name") or category_id),
        emoji=str(meta_raw.get("emoji") or ""),
        color=str(meta_raw.get("color") or ""),
        description=str(meta_raw.get("description") or ""),
    )

    questions_raw = entry.get("questions")
    if not isinstance(questions_raw, list):
        raise QuestionBankError(f"Category '{category_id}' must define a 'questions' list.")
    questions = tuple(
        _parse_question(category_id, position, item) for position, item in enumerate(questions_raw)
    )
    return CategoryQuestions(meta=meta, questions=questions)


def _parse_question(category_id: str, position: int, item: Any) -> RawQuestion:
    where = f"{category_id} question {position + 1}"
    if not isinstance(item, dict):
        raise QuestionBankError(f"{where}: expected an object.")

    text = str(item.get("q") or "").strip()
    if not text:
        raise QuestionBankError(f"{where}: question text (q) missing.")

    choices = item.get("choices")
    if not isinstance(choices, list) or len(choices) < 2:
        raise QuestionBankError(f"{where}: at least two choices are required.")
    cleaned = tuple(str(choice).strip() for choice in choices)
    if any(not choice for choice in cleaned):
        raise QuestionBankError(f"{where}: choice text cannot be empty.")

    answer = item.get("answer")
    if isinstance(answer, bool) or not isinstance(answer, int) or not 0 <= answer < len(cleaned):
        raise QuestionBankError(f"{where}: answer must index one of the {len(cleaned)} choices.")

    return RawQuestion(
        text=text,
        choices=cleaned,
        answer=answer,
        explanation=item.get("explanation") or None,
        deep_dive=item.get("deepDive") or item.get("deep_dive") or None,
    )
