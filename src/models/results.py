# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Request and response models for score records and approvals."""

from datetime import datetime
from typing import Literal, Self
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.models.common import AcademicYear, ApprovalTier, Decision, ResultStatus, Semester


def _require_comments(decision: Decision, comments: str | None) -> None:
    if decision == Decision.REJECT and not (comments and comments.strip()):
        raise ValueError("comments are required when rejecting")


# =============================================================================
# Score entry
# =============================================================================


class ScoreEntry(BaseModel):
    """One line of a lecturer's score sheet."""

    student_id: str = Field(..., min_length=1, max_length=64)
    ca_score: float = Field(..., ge=0, description="Continuous assessment score")
    exam_score: float = Field(..., ge=0, description="Examination score")


class BulkScoreRequest(BaseModel):
    """Score sheet for one course and term.

    Year and semester default to the current academic session.
    """

    course_id: UUID
    academic_year: AcademicYear | None = None
    semester: Semester | None = None
    entries: list[ScoreEntry] = Field(..., min_length=1, max_length=500)


class ScoreUpdateRequest(BaseModel):
    """Edit of a single score record (also used to resubmit)."""

    ca_score: float = Field(..., ge=0)
    exam_score: float = Field(..., ge=0)


class ScoreEntryOutcome(BaseModel):
    """Outcome of one score sheet line."""

    student_id: str
    outcome: Literal["created", "updated", "resubmitted", "failed"]
    record_id: str | None = None
    error_code: str | None = None
    error: str | None = None


class BulkScoreResponse(BaseModel):
    """Summary of a score sheet upload."""

    course_id: str
    academic_year: str
    semester: Semester
    created: int = 0
    updated: int = 0
    resubmitted: int = 0
    failed: int = 0
    results: list[ScoreEntryOutcome] = Field(default_factory=list)


class ScoreRecordResponse(BaseModel):
    """Score record as returned to lecturers and administrators."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    student_id: str
    course_id: str
    academic_year: str
    semester: Semester
    ca_score: float | None
    exam_score: float | None
    total_score: float | None
    letter_grade: str | None
    status: ResultStatus
    submitted_by: str | None
    cycle: int
    version: int
    created_at: datetime
    updated_at: datetime


# =============================================================================
# Approval
# =============================================================================


class AdvanceRequest(BaseModel):
    """A tier's decision on one score record."""

    tier: ApprovalTier
    decision: Decision
    comments: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def check_comments(self) -> Self:
        """Refuse a rejection without a reason."""
        _require_comments(self.decision, self.comments)
        return self


class BatchAdvanceRequest(BaseModel):
    """A tier's decision applied to every matching record of a term.

    Year and semester default to the current academic session. The
    expected status defaults to the status the tier reviews.
    """

    tier: ApprovalTier
    decision: Decision
    academic_year: AcademicYear | None = None
    semester: Semester | None = None
    expected_status: ResultStatus | None = None
    course_id: UUID | None = None
    record_ids: list[UUID] | None = Field(default=None, max_length=5000)
    comments: str | None = Field(default=None, max_length=2000)

    @model_validator(mode="after")
    def check_comments(self) -> Self:
        """Refuse a batch rejection without a reason."""
        _require_comments(self.decision, self.comments)
        return self


class ForceApproveRequest(BaseModel):
    """Senate override finalising a record without the lower tiers."""

    reason: str = Field(..., min_length=1, max_length=2000)


class LedgerEntryResponse(BaseModel):
    """One tier's audit entry for one cycle."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    score_record_id: str
    tier: ApprovalTier
    cycle: int
    status: Literal["PENDING", "APPROVED", "REJECTED"]
    decided_at: datetime | None
    decided_by: str | None
    comments: str | None
    forced: bool
    superseded_at: datetime | None


class AdvanceResponse(BaseModel):
    """Result of advancing one record."""

    record: ScoreRecordResponse
    previous_status: ResultStatus
    ledger_entry: LedgerEntryResponse


class ForceApproveResponse(BaseModel):
    """Result of a force approval."""

    record: ScoreRecordResponse
    previous_status: ResultStatus
    forced_entries: list[LedgerEntryResponse]


class BatchItemError(BaseModel):
    """A record that could not be advanced in a batch."""

    record_id: str
    code: str
    message: str


class BatchAdvanceResponse(BaseModel):
    """Counts from a batch transition."""

    tier: ApprovalTier
    decision: Decision
    academic_year: str
    semester: Semester
    expected_status: ResultStatus
    matched: int = 0
    advanced: int = 0
    skipped: int = 0
    failed_validation: int = 0
    failed: int = 0
    notifications_queued: int = 0
    errors: list[BatchItemError] = Field(default_factory=list)


class LedgerHistoryResponse(BaseModel):
    """Audit trail of a score record across resubmission cycles."""

    score_record_id: str
    current_cycle: int
    status: ResultStatus
    entries: list[LedgerEntryResponse]


# =============================================================================
# Review and student views
# =============================================================================


class ReviewStatistics(BaseModel):
    """Record counts per status for a review listing."""

    total: int = 0
    pending: int = 0
    department_approved: int = 0
    faculty_approved: int = 0
    senate_approved: int = 0
    rejected: int = 0


class ReviewItem(ScoreRecordResponse):
    """Score record with its course details."""

    course_code: str
    course_title: str


class ReviewListResponse(BaseModel):
    """Records awaiting or past review for a term."""

    academic_year: str
    semester: Semester
    items: list[ReviewItem]
    statistics: ReviewStatistics


class VisibleScore(BaseModel):
    """A finalised result as shown to the student."""

    record_id: str
    course_id: str
    course_code: str
    course_title: str
    credit_unit: int
    academic_year: str
    semester: Semester
    ca_score: float
    exam_score: float
    total_score: float
    letter_grade: str
    grade_points: int


class ResultStatisticsResponse(BaseModel):
    """Pass and fail counts over a student's visible results."""

    total: int = 0
    passed: int = 0
    failed: int = 0
    total_credits: int = 0
    pass_rate: float = 0.0


class VisibleScoresResponse(BaseModel):
    """A student's finalised results with grade point averages.

    ``gpa`` covers the returned results; ``cgpa`` covers every finalised
    result of the student.
    """

    student_id: str
    academic_year: str | None
    semester: Semester | None
    results: list[VisibleScore]
    gpa: float
    cgpa: float
    statistics: ResultStatisticsResponse
