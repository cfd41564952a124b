"""Generation task parameters and application-facade response models."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from study_assistant.models.content import RetrievalResult


class Difficulty(str, Enum):  # noqa: UP042  StrEnum requires Python 3.11+
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class QuestionType(str, Enum):  # noqa: UP042
    MULTIPLE_CHOICE = "multiple_choice"
    TRUE_FALSE = "true_false"
    FILL_BLANK = "fill_blank"
    SHORT_ANSWER = "short_answer"


class SummaryType(str, Enum):  # noqa: UP042
    BRIEF = "brief"
    DETAILED = "detailed"
    KEY_POINTS = "key_points"
    VISUAL_SUMMARY = "visual_summary"


class StudyLevel(str, Enum):  # noqa: UP042
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"


class ErrorStage(str, Enum):  # noqa: UP042
    CONFIGURATION = "configuration"
    EXTRACTION = "extraction"
    EMBEDDING = "embedding"
    STORAGE = "storage"
    RETRIEVAL = "retrieval"
    GENERATION = "generation"


# ---------------------------------------------------------------------------
# Task parameters
# ---------------------------------------------------------------------------

class QuestionParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    count: int = Field(default=5, ge=1, le=20)
    difficulty: Difficulty = Difficulty.MEDIUM
    question_types: list[QuestionType] = Field(
        default_factory=lambda: [QuestionType.MULTIPLE_CHOICE, QuestionType.SHORT_ANSWER],
        min_length=1,
    )


class SummaryParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    summary_type: SummaryType = SummaryType.DETAILED
    max_length: int = Field(
        default=2000, ge=100, le=5000, description="Upper bound on summary length, in characters."
    )


class StudyPlanParams(BaseModel):
    model_config = ConfigDict(frozen=True)

    study_hours: int = Field(default=10, ge=1, le=168)
    level: StudyLevel = StudyLevel.INTERMEDIATE
    focus_areas: list[str] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# Facade responses
# ---------------------------------------------------------------------------

class ErrorPayload(BaseModel):
    """Caller-facing failure: which stage failed and a short message."""

    model_config = ConfigDict(frozen=True)

    stage: ErrorStage
    message: str


class QuestionSet(BaseModel):
    model_config = ConfigDict(frozen=True)

    document_id: str
    questions: list[dict[str, Any]] = Field(default_factory=list)
    params: QuestionParams
    topic: str | None = None
    context_sections: int = 0

    @property
    def count(self) -> int:
        return len(self.questions)


class SummaryResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    document_id: str
    summary_type: SummaryType
    summary: str
    context_sections: int = 0


class StudyPlanResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    document_id: str
    params: StudyPlanParams
    plan: dict[str, Any] = Field(default_factory=dict)


class SearchResponse(BaseModel):
    model_config = ConfigDict(frozen=True)

    query: str
    results: list[RetrievalResult] = Field(default_factory=list)

    @property
    def total(self) -> int:
        return len(self.results)


class DocumentInfo(BaseModel):
    """Aggregate view of one stored document."""

    model_config = ConfigDict(frozen=True)

    document_id: str
    filename: str = ""
    media_kind: str = ""
    upload_time: str = ""
    total_sections: int = 0
    content_breakdown: dict[str, int] = Field(default_factory=dict)
    word_count: int = 0
    estimated_reading_minutes: int = 0
    has_visual_content: bool = False
    has_transcript: bool = False
    degraded_sections: int = 0
