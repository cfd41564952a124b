# =============================================================================
# study_assistant/cli/study.py - Study Assistant CLI
# =============================================================================
#
# Operator CLI over the StudyAssistant facade plus a backend diagnostic.
#
# Supported subcommands:
#
#   diagnose    - Embedding health probe, sample embed, vector-store
#                 database/collection init, probe write and probe query
#   ingest      - Ingest one file (pdf, pptx/ppt, docx/doc, mp4/mov/avi, mp3/wav)
#   questions   - Generate a question set for a stored document
#   summary     - Summarise a stored document
#   study-plan  - Build an hour-by-hour study plan for a stored document
#   search      - Similarity search across stored documents
#   info        - Structure and reading-time estimate for a document
#   sweep       - Delete ingestion scratch files older than the max age
#
# Every command prints one JSON document on stdout.  Failures print an
# error payload {"stage": ..., "message": ...} and exit with status 1.
#
# Usage examples:
#   python -m study_assistant.cli diagnose
#   python -m study_assistant.cli ingest --file lecture.pdf
#   python -m study_assistant.cli questions --document-id doc_ab12... \
#       --count 10 --difficulty hard --types multiple_choice true_false
#   python -m study_assistant.cli search --query "photosynthesis" --limit 5
# =============================================================================

"""Standalone CLI for the multimodal study assistant.

Usage::

    python -m study_assistant.cli diagnose
    python -m study_assistant.cli ingest --file /path/to/slides.pptx
    python -m study_assistant.cli summary --document-id doc_... --type brief
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from study_assistant.config.settings import Settings
from study_assistant.main import (
    _build_embedding_provider,
    _build_vector_store,
    build_study_assistant,
)
from study_assistant.models.content import ContentType, VectorRecord
from study_assistant.models.document import SUPPORTED_EXTENSIONS
from study_assistant.models.generation import (
    Difficulty,
    ErrorPayload,
    ErrorStage,
    QuestionParams,
    QuestionType,
    StudyLevel,
    StudyPlanParams,
    SummaryParams,
    SummaryType,
)
from study_assistant.services.study_assistant import StudyAssistant, stage_for
from study_assistant.utils.errors import StudyAssistantError
from study_assistant.utils.logging import configure_logging
from study_assistant.utils.temp_files import sweep_stale_files

_DIAGNOSE_TEXTS = ["Hello world", "This is a test"]
_DIAGNOSE_RECORD = VectorRecord(
    id="diagnose_probe_0",
    document="Photosynthesis converts light energy into chemical energy in plants.",
    metadata={"document_id": "diagnose_probe", "content_type": "text", "chunk_index": 0},
)
_DIAGNOSE_QUERY = "How do plants make energy?"


# ---------------------------------------------------------------------------
# Output helpers
# ---------------------------------------------------------------------------


def _emit(payload: BaseModel | dict[str, Any]) -> None:
    data = payload.model_dump(mode="json") if isinstance(payload, BaseModel) else payload
    print(json.dumps(data, indent=2, ensure_ascii=False))


def _finish(result: BaseModel) -> int:
    """Print *result* and map it to an exit code."""
    if isinstance(result, ErrorPayload):
        _emit({"success": False, "error": result.model_dump(mode="json")})
        return 1
    _emit({"success": True, "result": result.model_dump(mode="json")})
    return 0


# ---------------------------------------------------------------------------
# Handlers
# ---------------------------------------------------------------------------


async def _handle_diagnose(app_settings: Settings) -> int:
    """Walk the write/read path against the live backends, step by step."""
    report: dict[str, Any] = {}
    async with httpx.AsyncClient() as http_client:
        embedding = _build_embedding_provider(app_settings, http_client)
        store = _build_vector_store(app_settings, embedding, http_client)
        report["embedding_provider"] = embedding.get_provider_name()

        report["embedding_health"] = await embedding.health_check()
        if not report["embedding_health"]:
            _emit({"success": False, "report": report})
            return 1

        try:
            vectors = await embedding.embed(_DIAGNOSE_TEXTS)
            report["sample_embedding"] = {
                "count": len(vectors),
                "dimension": len(vectors[0]) if vectors else 0,
            }
            report["heartbeat"] = await store.heartbeat()
            report["database"] = await store.ensure_database()
            report["collection"] = await store.ensure_collection()
            report["write"] = await store.upsert([_DIAGNOSE_RECORD])
            results = await store.query(_DIAGNOSE_QUERY, limit=2)
        except StudyAssistantError as exc:
            report["error"] = str(exc)
            _emit({"success": False, "report": report})
            return 1

        report["query_results"] = [r.model_dump(mode="json") for r in results]

    ok = all(report[step] for step in ("database", "collection", "write")) and bool(results)
    _emit({"success": ok, "report": report})
    return 0 if ok else 1


async def _handle_ingest(args: argparse.Namespace, assistant: StudyAssistant) -> int:
    return _finish(await assistant.upload(args.file, filename=args.filename))


async def _handle_questions(args: argparse.Namespace, assistant: StudyAssistant) -> int:
    params = QuestionParams(
        count=args.count,
        difficulty=Difficulty(args.difficulty),
        question_types=[QuestionType(t) for t in args.types],
    )
    result = await assistant.generate_questions(
        args.document_id,
        params,
        topic=args.topic,
        include_visual=not args.no_visual,
    )
    return _finish(result)


async def _handle_summary(args: argparse.Namespace, assistant: StudyAssistant) -> int:
    params = SummaryParams(summary_type=SummaryType(args.type), max_length=args.max_length)
    result = await assistant.generate_summary(
        args.document_id, params, include_multimedia=not args.no_multimedia
    )
    return _finish(result)


async def _handle_study_plan(args: argparse.Namespace, assistant: StudyAssistant) -> int:
    params = StudyPlanParams(
        study_hours=args.hours,
        level=StudyLevel(args.level),
        focus_areas=args.focus or [],
    )
    return _finish(await assistant.generate_study_plan(args.document_id, params))


async def _handle_search(args: argparse.Namespace, assistant: StudyAssistant) -> int:
    result = await assistant.search_content(
        args.query,
        document_ids=args.document_ids,
        content_types=[ContentType(t) for t in args.content_types] if args.content_types else None,
        limit=args.limit,
    )
    return _finish(result)


async def _handle_info(args: argparse.Namespace, assistant: StudyAssistant) -> int:
    return _finish(await assistant.document_info(args.document_id))


_ASSISTANT_HANDLERS = {
    "ingest": _handle_ingest,
    "questions": _handle_questions,
    "summary": _handle_summary,
    "study-plan": _handle_study_plan,
    "search": _handle_search,
    "info": _handle_info,
}


async def _run_with_assistant(args: argparse.Namespace, app_settings: Settings) -> int:
    async with build_study_assistant(app_settings) as assistant:
        return await _ASSISTANT_HANDLERS[args.command](args, assistant)


# ---------------------------------------------------------------------------
# Argument parser
# ---------------------------------------------------------------------------


def _build_parser() -> argparse.ArgumentParser:
    """Build the argparse parser for the study-assistant CLI."""
    parser = argparse.ArgumentParser(
        prog="python -m study_assistant.cli",
        description="Ingest study materials and generate questions, summaries and plans.",
    )
    subparsers = parser.add_subparsers(dest="command", help="Commands")

    subparsers.add_parser("diagnose", help="Check the embedding backend and vector store")

    ingest_parser = subparsers.add_parser("ingest", help="Ingest one study-material file")
    ingest_parser.add_argument(
        "--file", required=True,
        help=f"Path to the file (one of: {', '.join(SUPPORTED_EXTENSIONS)})",
    )
    ingest_parser.add_argument(
        "--filename", default=None, help="Original upload name (defaults to the file's name)"
    )

    q_parser = subparsers.add_parser("questions", help="Generate questions for a document")
    q_parser.add_argument("--document-id", required=True, dest="document_id")
    q_parser.add_argument("--count", type=int, default=5, help="Number of questions (1-20)")
    q_parser.add_argument(
        "--difficulty", default=Difficulty.MEDIUM.value, choices=[d.value for d in Difficulty]
    )
    q_parser.add_argument(
        "--types",
        nargs="+",
        default=[QuestionType.MULTIPLE_CHOICE.value, QuestionType.SHORT_ANSWER.value],
        choices=[t.value for t in QuestionType],
    )
    q_parser.add_argument("--topic", default=None, help="Focus the questions on a topic")
    q_parser.add_argument(
        "--no-visual", action="store_true", dest="no_visual",
        help="Exclude image-description chunks from the context",
    )

    s_parser = subparsers.add_parser("summary", help="Summarise a document")
    s_parser.add_argument("--document-id", required=True, dest="document_id")
    s_parser.add_argument(
        "--type", default=SummaryType.DETAILED.value, choices=[t.value for t in SummaryType]
    )
    s_parser.add_argument(
        "--max-length", type=int, default=2000, dest="max_length",
        help="Maximum summary length in characters (100-5000)",
    )
    s_parser.add_argument(
        "--no-multimedia", action="store_true", dest="no_multimedia",
        help="Use plain text chunks only (no transcripts or image descriptions)",
    )

    p_parser = subparsers.add_parser("study-plan", help="Build a study plan for a document")
    p_parser.add_argument("--document-id", required=True, dest="document_id")
    p_parser.add_argument("--hours", type=int, default=10, help="Total study hours (1-168)")
    p_parser.add_argument(
        "--level", default=StudyLevel.INTERMEDIATE.value, choices=[lv.value for lv in StudyLevel]
    )
    p_parser.add_argument("--focus", nargs="*", default=None, help="Focus areas")

    search_parser = subparsers.add_parser("search", help="Search across stored documents")
    search_parser.add_argument("--query", required=True)
    search_parser.add_argument("--document-ids", nargs="*", default=None, dest="document_ids")
    search_parser.add_argument(
        "--content-types", nargs="*", default=None, dest="content_types",
        choices=[t.value for t in ContentType],
    )
    search_parser.add_argument("--limit", type=int, default=10, help="Max results (1-50)")

    info_parser = subparsers.add_parser("info", help="Show document structure and stats")
    info_parser.add_argument("--document-id", required=True, dest="document_id")

    sweep_parser = subparsers.add_parser("sweep", help="Delete stale ingestion scratch files")
    sweep_parser.add_argument(
        "--max-age", type=int, default=None, dest="max_age",
        help="Age threshold in seconds (defaults to TEMP_MAX_AGE_SECONDS)",
    )

    return parser


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------


def main(argv: list[str] | None = None) -> None:
    """CLI entry point.

    ``diagnose`` and ``sweep`` need only part of the stack; every other
    command builds the full :class:`StudyAssistant`.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        sys.exit(1)

    app_settings = Settings()
    configure_logging(
        log_level=app_settings.log_level,
        json_output=(app_settings.app_env == "production"),
    )

    try:
        if args.command == "diagnose":
            exit_code = asyncio.run(_handle_diagnose(app_settings))
        elif args.command == "sweep":
            max_age = args.max_age if args.max_age is not None else app_settings.temp_max_age_seconds
            removed = sweep_stale_files(app_settings.temp_dir, max_age)
            _emit({"success": True, "result": {"removed": removed, "temp_dir": app_settings.temp_dir}})
            exit_code = 0
        else:
            exit_code = asyncio.run(_run_with_assistant(args, app_settings))
    except ValidationError as exc:
        _emit({"success": False, "error": {"stage": "configuration", "message": str(exc)}})
        exit_code = 1
    except StudyAssistantError as exc:
        payload = ErrorPayload(
            stage=stage_for(exc, ErrorStage.CONFIGURATION), message=exc.message
        )
        _emit({"success": False, "error": payload.model_dump(mode="json")})
        exit_code = 1

    sys.exit(exit_code)


if __name__ == "__main__":
    main()
