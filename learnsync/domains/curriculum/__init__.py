# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Curriculum domain.

This package provides:
- Record schemas shared by the remote gateway and the local store
- CurriculumQueries: Read-only queries served from the local store
- CurriculumSyncService: Reconciliation of the local mirror
  (import from learnsync.domains.curriculum.sync_service)

The sync service is not re-exported here because the remote gateway
depends on the schemas in this package.
"""

from learnsync.domains.curriculum.queries import CurriculumQueries, SearchDebouncer
from learnsync.domains.curriculum.schemas import (
    AssessmentOverview,
    AssessmentRecord,
    GradeRecord,
    LessonRecord,
    QuizOption,
    QuizPayload,
    QuizQuestion,
    QuizScore,
    SearchKind,
    SearchResult,
    SubjectRecord,
    SubjectSummary,
    TopicRecord,
    score_quiz,
)

__all__ = [
    # Queries
    "CurriculumQueries",
    "SearchDebouncer",
    # Records
    "SubjectRecord",
    "TopicRecord",
    "LessonRecord",
    "AssessmentRecord",
    "GradeRecord",
    # Quiz
    "QuizPayload",
    "QuizQuestion",
    "QuizOption",
    "QuizScore",
    "score_quiz",
    # Views
    "SearchKind",
    "SearchResult",
    "SubjectSummary",
    "AssessmentOverview",
]
