"""Fact models — one class per row shape in the fact store.

Field names mirror the store's snake_case columns so rows round-trip with
``Model.model_validate(row)`` / ``model.model_dump(mode="json")``.
Answer, HOTSAnswer and Progress are unique per their conflict keys
(see ``CONFLICT_KEYS``); the store upserts rather than duplicates them.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Collection(str, Enum):
    """Collections held by the fact store."""
    TEXTS = "texts"
    QUESTIONS = "questions"
    ANSWERS = "answers"
    PROGRESS = "progress"
    HOTS_QUESTIONS = "hots_questions"
    HOTS_ANSWERS = "hots_answers"
    HOTS_ANSWER_HISTORY = "hots_answer_history"  # archived graded answers


CONFLICT_KEYS: dict[Collection, tuple[str, ...]] = {
    Collection.ANSWERS: ("user_id", "question_id"),
    Collection.HOTS_ANSWERS: ("user_id", "hots_question_id"),
    Collection.PROGRESS: ("user_id", "text_id"),
}


class Genre(str, Enum):
    NARRATIVE = "narrative"
    EXPOSITORY = "expository"
    DESCRIPTIVE = "descriptive"
    PROCEDURAL = "procedural"
    PERSUASIVE = "persuasive"


class QuestionCategory(str, Enum):
    LITERAL = "literal"
    INFERENTIAL = "inferential"
    HOTS = "hots"


class QuestionType(str, Enum):
    MULTIPLE_CHOICE = "multiple_choice"
    ESSAY = "essay"


class HOTSCategory(str, Enum):
    ANALYSIS = "analysis"
    EVALUATION = "evaluation"
    CREATION = "creation"


class Difficulty(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class HOTSTaskType(str, Enum):
    CASE_STUDY = "case_study"
    CREATIVE_WRITING = "creative_writing"
    CRITICAL_ANALYSIS = "critical_analysis"
    PROBLEM_SOLVING = "problem_solving"


class CompletionStatus(str, Enum):
    """Quiz / HOTS completion stage of a Progress row."""
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"


class HOTSAnswerStatus(str, Enum):
    SUBMITTED = "submitted"  # waiting for a teacher
    GRADED = "graded"


# ---------------------------------------------------------------------------
# Text structure — one variant per genre
# ---------------------------------------------------------------------------
# Stored structure keys are the authoring form's (Indonesian) labels;
# aliases map them onto English attribute names.

class _StructureBase(BaseModel):
    model_config = ConfigDict(populate_by_name=True, extra="ignore")


class NarrativeStructure(_StructureBase):
    genre: Literal["narrative"] = "narrative"
    orientation: str = Field("", alias="orientasi")
    complication: str = Field("", alias="komplikasi")
    resolution: str = Field("", alias="resolusi")


class ExpositoryStructure(_StructureBase):
    genre: Literal["expository"] = "expository"
    thesis: str = Field("", alias="tesis")
    arguments: str = Field("", alias="argumen")
    conclusion: str = Field("", alias="kesimpulan")


class DescriptiveStructure(_StructureBase):
    genre: Literal["descriptive"] = "descriptive"
    identification: str = Field("", alias="identifikasi")
    description: str = Field("", alias="deskripsi")


class ProceduralStructure(_StructureBase):
    genre: Literal["procedural"] = "procedural"
    goal: str = Field("", alias="tujuan")
    steps: str = Field("", alias="langkah-langkah")


class PersuasiveStructure(_StructureBase):
    genre: Literal["persuasive"] = "persuasive"
    position: str = Field("", alias="pernyataan posisi")
    reasons: str = Field("", alias="alasan")


TextStructure = Annotated[
    Union[
        NarrativeStructure,
        ExpositoryStructure,
        DescriptiveStructure,
        ProceduralStructure,
        PersuasiveStructure,
    ],
    Field(discriminator="genre"),
]


# ---------------------------------------------------------------------------
# Content
# ---------------------------------------------------------------------------

class Text(BaseModel):
    """A reading text authored by a teacher."""
    id: str
    title: str = ""
    genre: Genre
    content: str = ""
    structure: TextStructure | None = None
    created_by: str = ""
    is_archived: bool = False
    created_at: datetime | None = None

    @model_validator(mode="before")
    @classmethod
    def _tag_structure(cls, data: Any) -> Any:
        """Stored structures carry no tag; take it from the text's genre."""
        if not isinstance(data, dict):
            return data
        structure = data.get("structure")
        genre = data.get("genre")
        if isinstance(structure, dict) and genre is not None:
            if not structure:
                return {**data, "structure": None}
            if "genre" not in structure:
                tag = genre.value if isinstance(genre, Enum) else genre
                return {**data, "structure": {**structure, "genre": tag}}
        return data


class Question(BaseModel):
    """Closed-form comprehension question (literal / inferential / hots)."""
    id: str
    text_id: str
    question: str = ""
    category: QuestionCategory = QuestionCategory.LITERAL
    type: QuestionType = QuestionType.MULTIPLE_CHOICE
    options: list[str] = Field(default_factory=list)
    correct_answer: str | None = None
    points: int = Field(default=10, gt=0)

    @field_validator("options", mode="before")
    @classmethod
    def _none_options(cls, value: Any) -> Any:
        return value if value is not None else []


class RubricCriterion(BaseModel):
    """One grading criterion; guidance only, not summed against ``points``."""
    model_config = ConfigDict(populate_by_name=True)

    criterion: str
    description: str = ""
    max_score: int = Field(default=0, ge=0, alias="maxScore")


class HOTSQuestion(BaseModel):
    """Open-ended higher-order-thinking question, graded by a teacher."""
    id: str
    text_id: str
    question: str = ""
    category: HOTSCategory = HOTSCategory.ANALYSIS
    difficulty: Difficulty = Difficulty.MEDIUM
    type: HOTSTaskType = HOTSTaskType.CRITICAL_ANALYSIS
    points: int = Field(default=100, gt=0)
    estimated_time: int = 0  # minutes
    instructions: str = ""
    rubric: list[RubricCriterion] = Field(default_factory=list)

    @field_validator("rubric", mode="before")
    @classmethod
    def _legacy_rubric(cls, value: Any) -> Any:
        """Accept the authoring form's ``{"criteria": [...], "totalScore": n}`` blob."""
        if value is None:
            return []
        if isinstance(value, dict):
            return value.get("criteria", [])
        return value

    @property
    def rubric_total(self) -> int:
        return sum(c.max_score for c in self.rubric)


# ---------------------------------------------------------------------------
# Student facts
# ---------------------------------------------------------------------------

class Answer(BaseModel):
    """A student's answer to a closed-form question."""
    id: str
    user_id: str
    question_id: str
    answer: str = ""
    score: int = 0
    submitted_at: datetime | None = None


class HOTSAnswer(BaseModel):
    """A student's answer to a HOTS question. ``score == 0`` until graded."""
    id: str
    user_id: str
    hots_question_id: str
    answer: str = ""
    score: int = 0
    feedback: str | None = None
    submitted_at: datetime | None = None
    graded_at: datetime | None = None
    graded_by: str | None = None

    @property
    def status(self) -> HOTSAnswerStatus:
        if self.graded_at is None:
            return HOTSAnswerStatus.SUBMITTED
        return HOTSAnswerStatus.GRADED

    @property
    def is_graded(self) -> bool:
        return self.graded_at is not None


class ArchivedHOTSAnswer(HOTSAnswer):
    """A graded HOTS answer preserved before a resubmission reset it."""
    answer_id: str
    archived_at: datetime | None = None


class Progress(BaseModel):
    """Per-(student, text) derived cache; always re-derivable from facts."""
    user_id: str
    text_id: str
    read_status: bool = False
    quiz_status: CompletionStatus = CompletionStatus.NOT_STARTED
    hots_status: CompletionStatus = CompletionStatus.NOT_STARTED
    reading_score: int = 0  # latest quiz percentage
    hots_score: int = 0  # 0-100
    last_accessed: datetime | None = None

    @field_validator("reading_score", "hots_score", mode="before")
    @classmethod
    def _null_score(cls, value: Any) -> Any:
        return 0 if value is None else value
