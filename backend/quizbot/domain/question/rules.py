"""Validation rules for corpus entries; turns raw documents into Questions."""
from __future__ import annotations
from typing import Any, List

from quizbot.domain.common.result import Result
from quizbot.domain.question.models import Question, content_id

REQUIRED_TEXT_FIELDS = ("masked_sentence", "correct", "base")
BLANK_MARKER = "*****"


def _pairs(data: dict, key: str, errors: List[str]) -> list[dict]:
    pairs = []
    for i, item in enumerate(data.get(key) or []):
        if not isinstance(item, dict) or not isinstance(item.get("name"), str) or "value" not in item:
            errors.append(f"'{key}[{i}]' must be a mapping with 'name' and 'value'.")
            continue
        pairs.append({"name": item["name"], "value": str(item["value"])})
    return pairs


def _strings(data: dict, key: str, errors: List[str]) -> list[str]:
    raw = data.get(key) or []
    if not isinstance(raw, list):
        errors.append(f"'{key}' must be a list.")
        return []
    return [str(v) for v in raw]


def normalize_question_data(data: Any) -> Result[dict]:
    """Check the minimum fields and coerce a raw entry into the canonical shape."""
    if not isinstance(data, dict):
        return Result.fail("Question entry must be a mapping.")

    errors: List[str] = []
    for key in REQUIRED_TEXT_FIELDS:
        value = data.get(key)
        if not isinstance(value, str) or not value.strip():
            errors.append(f"'{key}' is required and cannot be empty.")

    normalized = {
        "sentence": str(data.get("sentence") or ""),
        "masked_sentence": data.get("masked_sentence"),
        "base": " ".join(str(data.get("base") or "").split()),
        "correct": data.get("correct"),
        "wrong_answers": _strings(data, "wrong_answers", errors),
        "hints": _pairs(data, "hints", errors),
        "filters": _pairs(data, "filters", errors),
        "info": _strings(data, "info", errors),
    }
    if errors:
        return Result.fail(*errors)

    if BLANK_MARKER not in normalized["masked_sentence"]:
        return Result.fail(f"'masked_sentence' has no '{BLANK_MARKER}' blank.")

    return Result.ok(normalized)


def build_question(data: Any) -> Result[Question]:
    """Validate an entry and derive its content-hash id."""
    normalized = normalize_question_data(data)
    if not normalized.is_success:
        return Result.fail(*normalized.errors)
    payload = normalized.value
    payload["id"] = content_id(payload)
    return Result.ok(Question.from_dict(payload))
