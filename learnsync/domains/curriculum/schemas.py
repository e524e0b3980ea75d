# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Curriculum schemas.

This module defines Pydantic models for:
- Mirrored records (subjects, topics, lessons, assessments) as returned by
  the remote source and read back from the local store
- Quiz payloads carried by assessments, and quiz scoring
- Read-side views produced by the query layer

Records validate from remote JSON rows and from local ORM rows alike
(``from_attributes``). Unknown remote columns are ignored.
"""

from enum import Enum
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator

PASSING_RATIO = 0.5
DOCUMENT_KINDS = frozenset({"document", "pdf", "doc"})


class RecordModel(BaseModel):
    """Base for mirrored records."""

    model_config = ConfigDict(from_attributes=True, extra="ignore", coerce_numbers_to_str=True)


class SubjectRecord(RecordModel):
    """Subject within a grade."""

    id: str
    grade_id: str
    title: str
    subtext: str | None = None


class TopicRecord(RecordModel):
    """Topic within a subject."""

    id: str
    subject_id: str
    title: str
    subtopic: str | None = None


class LessonRecord(RecordModel):
    """Lesson within a topic.

    is_offline is owned by the local store. It is read back from local rows
    but never written from a record.
    """

    id: str
    topic_id: str
    title: str
    content: str = ""
    media_url: str | None = None
    media_type: str | None = None
    is_offline: bool = False

    @field_validator("content", mode="before")
    @classmethod
    def _content_default(cls, value: Any) -> Any:
        return "" if value is None else value

    @field_validator("media_url", mode="before")
    @classmethod
    def _blank_url(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("media_type", mode="before")
    @classmethod
    def _normalize_media_type(cls, value: Any) -> Any:
        """Fold media kinds onto "video" and "document".

        Video MIME types become "video"; "pdf", "document" and
        application/* types become "document". Any other kind is kept
        lower-cased so a new remote kind never fails a sync.
        """
        if value is None:
            return None
        if not isinstance(value, str):
            return value
        lowered = value.strip().lower()
        if not lowered:
            return None
        if lowered.startswith("video"):
            return "video"
        if lowered in DOCUMENT_KINDS or lowered.startswith("application/"):
            return "document"
        return lowered

    @property
    def has_media(self) -> bool:
        """Check if the lesson references downloadable media."""
        return self.media_url is not None


class QuizOption(BaseModel):
    """One answer option of a quiz question."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    text: str = ""
    is_correct: bool = False


class QuizQuestion(BaseModel):
    """A quiz question with its options in display order."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: str
    question_text: str = ""
    options: list[QuizOption] = Field(default_factory=list)


class QuizPayload(BaseModel):
    """Question set carried by an assessment."""

    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    questions: list[QuizQuestion] = Field(default_factory=list)


class AssessmentRecord(RecordModel):
    """Quiz attached to a lesson."""

    id: str
    lesson_id: str
    title: str
    quiz_data: QuizPayload = Field(default_factory=QuizPayload)

    @field_validator("quiz_data", mode="before")
    @classmethod
    def _empty_quiz(cls, value: Any) -> Any:
        return {} if value is None else value


class GradeRecord(RecordModel):
    """Grade level that scopes the mirror."""

    id: str
    name: str = Field(validation_alias=AliasChoices("name", "grade_name"))
    order_index: int | None = None


class QuizScore(BaseModel):
    """Result of scoring a set of answers against a quiz.

    Attributes:
        correct: Questions answered with a correct option.
        total: Questions in the quiz.
        percentage: Correct answers as a percentage, 0 for an empty quiz.
        passed: Whether at least half of the questions are correct.
    """

    correct: int
    total: int
    percentage: float
    passed: bool


def score_quiz(quiz: QuizPayload, answers: dict[str, str]) -> QuizScore:
    """Score selected options against a quiz.

    Args:
        quiz: The quiz payload.
        answers: Mapping of question id to the selected option id.
            Unanswered questions count as wrong.

    Returns:
        QuizScore with counts, percentage and pass state.
    """
    correct = 0
    for question in quiz.questions:
        selected = answers.get(question.id)
        if selected is None:
            continue
        for option in question.options:
            if option.id == selected:
                if option.is_correct:
                    correct += 1
                break

    total = len(quiz.questions)
    if total == 0:
        return QuizScore(correct=0, total=0, percentage=0.0, passed=False)

    return QuizScore(
        correct=correct,
        total=total,
        percentage=round(correct / total * 100, 2),
        passed=correct / total >= PASSING_RATIO,
    )


# =============================================================================
# Read-side views
# =============================================================================


class SearchKind(str, Enum):
    """Kind of record a search result points at."""

    SUBJECT = "subject"
    TOPIC = "topic"
    LESSON = "lesson"


class SearchResult(BaseModel):
    """One entry of a cross-kind title search.

    Attributes:
        kind: What the result points at.
        id: Record id.
        title: Record title.
        subtext: Human-readable kind label.
        href: Navigation target for the result.
    """

    kind: SearchKind
    id: str
    title: str
    subtext: str
    href: str


class SubjectSummary(BaseModel):
    """Counts shown on a subject card."""

    subject_id: str
    topic_count: int
    lesson_count: int


class AssessmentOverview(BaseModel):
    """Assessment enriched with the titles of its ancestors."""

    assessment: AssessmentRecord
    lesson_title: str = "Lesson"
    topic_title: str = "Topic"
    subject_title: str = "Subject"
