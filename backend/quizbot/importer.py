"""quizbot-import: load a question corpus into the SQLite database.

    quizbot-import data/                 # import every yaml/yml/json file
    quizbot-import data/cases.yaml --dry-run
    quizbot-import https://example.org/cases.yaml --database /tmp/quiz.db

Re-importing the same corpus is a no-op; questions missing from the new
corpus are deactivated, not deleted.
"""
from __future__ import annotations
import argparse
import logging
import sys
from typing import List, Optional

from quizbot.application.corpus_app_service import CorpusAppService, ImportPreview, unique_questions
from quizbot.core.config import DATA_DIR, DATABASE_PATH, LOG_LEVEL
from quizbot.persistence.db import init_db
from quizbot.persistence.repositories.sqlite.sqlite_question_repository import SqliteQuestionRepository


def show_preview(preview: ImportPreview) -> None:
    print(f"New questions:       {len(preview.new)}")
    print(f"Unchanged questions: {len(preview.unchanged)}")
    print(f"To deactivate:       {len(preview.deactivate)}")
    for qid in preview.deactivate:
        print(f"  - {qid}")


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(prog="quizbot-import", description="Import a question corpus.")
    parser.add_argument("source", nargs="?", default=DATA_DIR, help="directory, file or http(s) URL")
    parser.add_argument("--database", default=DATABASE_PATH, help="SQLite database path")
    parser.add_argument("--dry-run", action="store_true", help="only show what would change")
    args = parser.parse_args(argv)

    logging.basicConfig(level=getattr(logging, LOG_LEVEL, logging.INFO), format="%(levelname)s %(name)s: %(message)s")

    init_db(args.database)
    svc = CorpusAppService(SqliteQuestionRepository(args.database))

    questions = unique_questions(svc.load(args.source))
    print(f"Loaded {len(questions)} questions from {args.source}")
    show_preview(svc.preview(questions))

    if args.dry_run:
        print("Dry run, nothing written.")
        return 0

    result = svc.import_questions(questions)
    if not result.is_success:
        print(f"Import failed: {result.error}", file=sys.stderr)
        return 1
    print(f"Imported {result.value.upserted} questions, deactivated {result.value.deactivated}.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
