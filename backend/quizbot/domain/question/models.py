"""Question domain models. Pure Python, no DB or transport dependencies."""
from __future__ import annotations
import hashlib
import json
from dataclasses import dataclass, field
from typing import Tuple


@dataclass(frozen=True)
class Hint:
    name: str
    value: str


@dataclass(frozen=True)
class Attribute:
    """A filterable tag such as ``case: genitive``."""
    name: str
    value: str


@dataclass(frozen=True)
class Question:
    id: int
    prompt_template: str
    base_words: Tuple[str, ...]
    correct_answer: str
    distractors: Tuple[str, ...] = ()
    hints: Tuple[Hint, ...] = ()
    attributes: Tuple[Attribute, ...] = ()
    supplemental_info: Tuple[str, ...] = ()
    sentence: str = ""

    @property
    def base(self) -> str:
        return " ".join(self.base_words)

    def attribute_values(self) -> list[str]:
        return [a.value for a in self.attributes]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sentence": self.sentence,
            "masked_sentence": self.prompt_template,
            "base": self.base,
            "correct": self.correct_answer,
            "wrong_answers": list(self.distractors),
            "hints": [{"name": h.name, "value": h.value} for h in self.hints],
            "filters": [{"name": a.name, "value": a.value} for a in self.attributes],
            "info": list(self.supplemental_info),
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Question":
        """Inverse of :meth:`to_dict`; trusts ``data`` to be already validated."""
        return cls(
            id=int(data["id"]),
            sentence=data.get("sentence", ""),
            prompt_template=data["masked_sentence"],
            base_words=tuple(data.get("base", "").split()),
            correct_answer=data["correct"],
            distractors=tuple(data.get("wrong_answers", [])),
            hints=tuple(Hint(h["name"], h["value"]) for h in data.get("hints", [])),
            attributes=tuple(Attribute(f["name"], f["value"]) for f in data.get("filters", [])),
            supplemental_info=tuple(data.get("info", [])),
        )


@dataclass
class QuestionGroup:
    """One corpus document: a themed batch of questions."""
    theme: str
    category: str
    questions: list[Question] = field(default_factory=list)


def content_id(data: dict) -> int:
    """Stable 64-bit id from the question content (everything except ``id``).

    Canonical JSON is hashed with SHA-1; the first 8 bytes become a signed
    integer so the id fits an SQLite INTEGER column.
    """
    payload = {k: v for k, v in data.items() if k != "id"}
    canonical = json.dumps(payload, sort_keys=True, ensure_ascii=False)
    digest = hashlib.sha1(canonical.encode("utf-8")).digest()
    return int.from_bytes(digest[:8], "big", signed=True)
