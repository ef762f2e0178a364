"""Corpus ingestion: load question groups, validate them and sync the repository.

A source is a directory of ``.yaml``/``.yml``/``.json`` files, one such
file, or an ``http(s)`` URL serving one. Every document is a question group
``{theme, category, questions: [...]}`` (``tasks`` is accepted for
``questions``), or a list of such groups.
"""
from __future__ import annotations
import json
import logging
import os
from dataclasses import dataclass, field
from typing import Any, Iterable, List

import requests
import yaml

from quizbot.domain.common.result import Result
from quizbot.domain.question.models import Question, QuestionGroup
from quizbot.domain.question.rules import build_question
from quizbot.persistence.interfaces.question_repository import QuestionRepository

logger = logging.getLogger(__name__)

CORPUS_EXTENSIONS = (".yaml", ".yml", ".json")
FETCH_TIMEOUT_SECONDS = 30


@dataclass
class ImportPreview:
    new: List[int] = field(default_factory=list)
    unchanged: List[int] = field(default_factory=list)
    deactivate: List[int] = field(default_factory=list)


@dataclass(frozen=True)
class ImportReport:
    upserted: int
    deactivated: int


def _is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def _parse_document(text: str, name: str) -> Any:
    if name.lower().endswith(".json"):
        return json.loads(text)
    return yaml.safe_load(text)


def unique_questions(groups: Iterable[QuestionGroup]) -> List[Question]:
    """Questions of all groups in order, the first of identical ones kept."""
    seen = {}
    for group in groups:
        for question in group.questions:
            seen.setdefault(question.id, question)
    return list(seen.values())


class CorpusAppService:
    def __init__(self, repo: QuestionRepository):
        self._repo = repo

    # ------------------------------------------------------------------
    # LOAD
    # ------------------------------------------------------------------
    def load(self, source: str) -> List[QuestionGroup]:
        if _is_url(source):
            return self._load_url(source)
        if os.path.isdir(source):
            groups = []
            for name in sorted(os.listdir(source)):
                if name.lower().endswith(CORPUS_EXTENSIONS):
                    groups.extend(self._load_file(os.path.join(source, name)))
            return groups
        return self._load_file(source)

    def _load_url(self, url: str) -> List[QuestionGroup]:
        response = requests.get(url, timeout=FETCH_TIMEOUT_SECONDS)
        response.raise_for_status()
        name = url.split("?", 1)[0]
        if "json" in response.headers.get("Content-Type", ""):
            name += ".json"
        return self.parse_groups(_parse_document(response.text, name), url)

    def _load_file(self, path: str) -> List[QuestionGroup]:
        try:
            with open(path, "r", encoding="utf-8") as f:
                document = _parse_document(f.read(), path)
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error("Error reading file %s: %s", path, e)
            return []
        return self.parse_groups(document, path)

    def parse_groups(self, document: Any, origin: str) -> List[QuestionGroup]:
        """Validate one parsed document; invalid entries are logged and skipped."""
        documents = document if isinstance(document, list) else [document]
        groups = []
        for i, raw in enumerate(documents):
            if not isinstance(raw, dict):
                logger.error("%s: group #%d is not a mapping, skipped", origin, i)
                continue
            entries = raw.get("questions")
            if entries is None:
                entries = raw.get("tasks") or []

            group = QuestionGroup(theme=str(raw.get("theme") or ""), category=str(raw.get("category") or ""))
            for j, entry in enumerate(entries):
                result = build_question(entry)
                if result.is_success:
                    group.questions.append(result.value)
                else:
                    logger.warning("%s: question #%d of group '%s' skipped: %s", origin, j, group.theme, result.error)
            groups.append(group)
            logger.debug("%s: loaded %d questions of group '%s'", origin, len(group.questions), group.theme)
        return groups

    # ------------------------------------------------------------------
    # PREVIEW / IMPORT
    # ------------------------------------------------------------------
    def preview(self, questions: Iterable[Question]) -> ImportPreview:
        active = self._repo.active_ids()
        incoming = [q.id for q in questions]
        result = ImportPreview()
        for qid in incoming:
            (result.unchanged if qid in active else result.new).append(qid)
        incoming_set = set(incoming)
        result.deactivate = sorted(qid for qid in active if qid not in incoming_set)
        return result

    def import_questions(self, questions: List[Question]) -> Result[ImportReport]:
        if not questions:
            return Result.fail("No valid questions found; the corpus was left untouched.")
        upserted, deactivated = self._repo.upsert_questions(questions)
        return Result.ok(ImportReport(upserted=upserted, deactivated=deactivated))

    def run_import(self, source: str) -> Result[ImportReport]:
        questions = unique_questions(self.load(source))
        result = self.import_questions(questions)
        if result.is_success:
            logger.info(
                "Imported corpus from %s: %d questions, %d deactivated",
                source, result.value.upserted, result.value.deactivated,
            )
        else:
            logger.warning("Import from %s failed: %s", source, result.error)
        return result
