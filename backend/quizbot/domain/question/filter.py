"""Filter DSL over question attribute values.

``"genitive, accusative; plural"`` reads as
``(genitive OR accusative) AND plural``: groups are separated by ``;`` and
AND-combined, literals inside a group are separated by ``,`` and OR-combined.
A literal matches when it is a case-insensitive substring of any attribute
value of the question; attribute names only serve discoverability.
"""
from __future__ import annotations
from dataclasses import dataclass
from typing import Iterable, List, Sequence, Tuple

from quizbot.domain.question.models import Attribute, Question


@dataclass(frozen=True)
class FilterGroup:
    values: Tuple[str, ...]


@dataclass(frozen=True)
class FilterExpression:
    groups: Tuple[FilterGroup, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not self.groups


@dataclass(frozen=True)
class FilterInfo:
    name: str
    possible_values: List[str]


def parse_filter(text: str) -> FilterExpression:
    """Blank input gives the empty expression.

    Otherwise every group and literal is kept, empty ones included: an empty
    literal is a substring of any value, so ``"genitive,"`` selects every
    question that has at least one attribute.
    """
    if not text or not text.strip():
        return FilterExpression()
    return FilterExpression(tuple(
        FilterGroup(tuple(v.strip().lower() for v in raw_group.split(",")))
        for raw_group in text.split(";")
    ))


def _group_matches(values: Sequence[str], group: FilterGroup) -> bool:
    return any(literal in value for literal in group.values for value in values)


def matches(attributes: Iterable[Attribute], expression: FilterExpression) -> bool:
    values = [a.value.lower() for a in attributes]
    return all(_group_matches(values, group) for group in expression.groups)


def collect_filter_info(questions: Iterable[Question]) -> List[FilterInfo]:
    # name -> {lowercased value -> first seen original value}
    by_name: dict[str, dict[str, str]] = {}
    for question in questions:
        for attribute in question.attributes:
            values = by_name.setdefault(attribute.name, {})
            values.setdefault(attribute.value.lower(), attribute.value)

    return [
        FilterInfo(name=name, possible_values=sorted(values.values()))
        for name, values in sorted(by_name.items())
    ]
