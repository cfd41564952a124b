"""Generation orchestrator: retrieved context → prompt → LLM → parsed result.

Three task kinds share one entry point, :meth:`GenerationService.assemble_and_generate`,
dispatched on the parameter model passed in:

    QuestionParams   → list of question dicts
    SummaryParams    → summary text
    StudyPlanParams  → study-plan dict

Structured outputs are decoded with :func:`parse_markdown_json`; a decode
failure is logged with a preview of the raw text and becomes an empty result
instead of an exception.
"""

from __future__ import annotations

from typing import Any, Sequence

import structlog

from study_assistant.interfaces.llm_provider import ILLMProvider
from study_assistant.models.content import MULTIMEDIA_CONTENT_TYPES, RetrievalResult
from study_assistant.models.generation import (
    QuestionParams,
    StudyPlanParams,
    SummaryParams,
    SummaryType,
)
from study_assistant.utils.errors import GenerationParseError
from study_assistant.utils.json_parsing import parse_markdown_json

logger = structlog.get_logger(logger_name=__name__)

_QUESTION_SYSTEM_PROMPT = (
    "You are a question-generation expert for study and assessment materials. "
    "Read the provided study material carefully, identify the key concepts a "
    "learner should understand, and write clear educational questions about "
    "them. Include a short explanation for each correct answer. "
    "Return only a valid JSON array."
)

_SUMMARY_SYSTEM_PROMPT = (
    "You are a study assistant that writes accurate, well-organised summaries "
    "of course material. Use only the information in the provided content."
)

_STUDY_PLAN_SYSTEM_PROMPT = (
    "You are an experienced tutor who designs realistic study schedules. "
    "Return only a valid JSON object."
)

_SUMMARY_INSTRUCTIONS: dict[SummaryType, str] = {
    SummaryType.BRIEF: "Provide a brief summary (2-3 paragraphs) of the main points:",
    SummaryType.DETAILED: (
        "Provide a comprehensive summary covering all major topics and concepts:"
    ),
    SummaryType.KEY_POINTS: "Extract and organize the key points and important concepts:",
    SummaryType.VISUAL_SUMMARY: (
        "Create a summary that emphasizes visual elements, charts, diagrams, "
        "and multimedia content:"
    ),
}

_VISUAL_NOTE = (
    "Note: This content includes visual elements (images, charts, diagrams) "
    "that have been described. Pay attention to these visual descriptions "
    "when creating the summary."
)

_RAW_PREVIEW_CHARS = 500


def assemble_context(contents: Sequence[str]) -> str:
    """Join context strings with blank lines, preserving order."""
    return "\n\n".join(c for c in contents if c and c.strip())


class GenerationService:
    """Builds task prompts from retrieved chunks and parses the LLM's answer."""

    def __init__(
        self,
        llm: ILLMProvider,
        temperature: float = 0.3,
        max_tokens: int = 4000,
    ) -> None:
        self._llm = llm
        self._temperature = temperature
        self._max_tokens = max_tokens

    async def assemble_and_generate(
        self,
        content_list: Sequence[RetrievalResult],
        params: QuestionParams | SummaryParams | StudyPlanParams,
    ) -> list[dict[str, Any]] | str | dict[str, Any]:
        """Run one generation task over *content_list*.

        Parameters
        ----------
        content_list:
            Retrieved chunks, in the order they should appear in the prompt.
        params:
            Task parameters; the model type selects the task.

        Returns
        -------
        list | str | dict
            Questions, summary text, or a study plan respectively.  Parse
            failures return an empty list/dict.

        Raises
        ------
        LLMError
            If the provider call itself fails.
        """
        context = assemble_context([item.content for item in content_list])

        if isinstance(params, QuestionParams):
            return await self._generate_questions(context, params)
        if isinstance(params, SummaryParams):
            has_visual = any(
                item.content_type in {t.value for t in MULTIMEDIA_CONTENT_TYPES}
                for item in content_list
            )
            return await self._generate_summary(context, params, has_visual)
        if isinstance(params, StudyPlanParams):
            return await self._generate_study_plan(context, params)
        raise TypeError(f"Unsupported generation parameters: {type(params).__name__}")

    # ------------------------------------------------------------------
    # Task implementations
    # ------------------------------------------------------------------

    async def _generate_questions(
        self, context: str, params: QuestionParams
    ) -> list[dict[str, Any]]:
        type_str = ", ".join(t.value for t in params.question_types)
        prompt = (
            f"Based on the following study material, generate {params.count} "
            f"questions at {params.difficulty.value} difficulty level. "
            f"Include these question types: {type_str}.\n\n"
            "For multiple choice questions, provide 4 options with one correct answer.\n"
            "Format the response as a JSON array with objects containing: "
            "'question', 'type', 'options' (for multiple choice), "
            "'correct_answer', 'explanation'.\n\n"
            f"Study Material:\n{context}"
        )
        raw = await self._llm.complete(
            system_prompt=_QUESTION_SYSTEM_PROMPT,
            user_prompt=prompt,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        parsed = self._decode(raw, task="questions")
        if isinstance(parsed, dict):
            # Some models wrap the array: {"questions": [...]}
            parsed = parsed.get("questions", [])
        if not isinstance(parsed, list):
            logger.warning("generation_unexpected_shape", task="questions")
            return []

        questions = [q for q in parsed if isinstance(q, dict)]
        logger.info(
            "questions_generated",
            count=len(questions),
            requested=params.count,
            difficulty=params.difficulty.value,
        )
        return questions

    async def _generate_summary(
        self, context: str, params: SummaryParams, has_visual: bool
    ) -> str:
        parts = [_SUMMARY_INSTRUCTIONS[params.summary_type]]
        if has_visual:
            parts.append(_VISUAL_NOTE)
        parts.append(
            f"Keep the summary under {params.max_length} characters.\n\nContent:\n{context}"
        )
        summary = await self._llm.complete(
            system_prompt=_SUMMARY_SYSTEM_PROMPT,
            user_prompt="\n\n".join(parts),
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        summary = summary.strip()
        logger.info(
            "summary_generated",
            summary_type=params.summary_type.value,
            chars=len(summary),
            has_visual=has_visual,
        )
        return summary

    async def _generate_study_plan(
        self, context: str, params: StudyPlanParams
    ) -> dict[str, Any]:
        focus = (
            f"Focus especially on: {', '.join(params.focus_areas)}\n"
            if params.focus_areas
            else ""
        )
        prompt = (
            f"Based on this study material, create a {params.study_hours}-hour "
            f"study plan for a {params.level.value} learner.\n"
            f"{focus}"
            "Format as JSON with: 'total_hours', 'sessions' array with "
            "'session_number', 'duration_hours', 'topics', 'activities', "
            "'resources_needed'.\n\n"
            f"Study Material:\n{context}"
        )
        raw = await self._llm.complete(
            system_prompt=_STUDY_PLAN_SYSTEM_PROMPT,
            user_prompt=prompt,
            temperature=self._temperature,
            max_tokens=self._max_tokens,
        )
        parsed = self._decode(raw, task="study_plan")
        if not isinstance(parsed, dict):
            logger.warning("generation_unexpected_shape", task="study_plan")
            return {}

        logger.info(
            "study_plan_generated",
            hours=params.study_hours,
            sessions=len(parsed.get("sessions", []) or []),
        )
        return parsed

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _decode(self, raw: str, task: str) -> Any:
        try:
            return parse_markdown_json(raw)
        except GenerationParseError as exc:
            logger.error(
                "generation_parse_failed",
                task=task,
                error=str(exc),
                raw=raw[:_RAW_PREVIEW_CHARS],
                provider=self._llm.get_provider_name(),
            )
            return None
