# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Notification messages for result transitions.

Single transitions produce one message per recipient and record. Batch
transitions are aggregated so each affected student or lecturer gets a
single message per batch.
"""

from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass

from src.domains.results.state_machine import ApprovalTier, Decision
from src.infrastructure.notifications.channels.base import NotificationPayload

NOTIFICATION_TYPE = "GRADE"

TIER_LABELS: dict[ApprovalTier, str] = {
    ApprovalTier.DEPARTMENT: "department",
    ApprovalTier.SCHOOL: "faculty",
    ApprovalTier.SENATE: "senate",
}


@dataclass(frozen=True)
class TransitionEvent:
    """A completed transition, with what messages need to name.

    Attributes:
        record_id: Score record that moved.
        student_id: Student the result belongs to.
        lecturer_id: Lecturer who last submitted the scores.
        course_label: Course display label, e.g. "CSC 301 Operating Systems".
        tier: Tier that decided.
        decision: APPROVE or REJECT.
        new_status: Status after the transition.
        comments: Reviewer comments.
    """

    record_id: str
    student_id: str
    lecturer_id: str | None
    course_label: str
    tier: ApprovalTier
    decision: Decision
    new_status: str
    comments: str | None = None


def course_label(code: str, title: str) -> str:
    """Format a course for notification text."""
    return f"{code} {title}"


def transition_notifications(event: TransitionEvent) -> list[NotificationPayload]:
    """Build the notifications for one transition.

    Args:
        event: The completed transition.

    Returns:
        Payloads for the student (and the lecturer on rejection).
    """
    level = TIER_LABELS[event.tier]
    data = {
        "result_id": event.record_id,
        "level": event.tier.value,
        "status": event.new_status,
    }

    if event.decision == Decision.REJECT:
        message = f"Your result for {event.course_label} has been rejected at {level} level."
        if event.comments:
            message = f"{message} Reason: {event.comments}"
        payloads = [
            NotificationPayload(
                recipient_id=event.student_id,
                title="Result Rejected",
                message=message,
                notification_type=NOTIFICATION_TYPE,
                data={**data, "comments": event.comments},
            )
        ]
        if event.lecturer_id:
            payloads.append(
                NotificationPayload(
                    recipient_id=event.lecturer_id,
                    title="Result Rejected",
                    message=(
                        f"A result you submitted for {event.course_label} was rejected "
                        f"at {level} level. Reason: {event.comments}"
                    ),
                    notification_type=NOTIFICATION_TYPE,
                    data={**data, "comments": event.comments, "student_id": event.student_id},
                    priority="high",
                )
            )
        return payloads

    payloads = [
        NotificationPayload(
            recipient_id=event.student_id,
            title="Result Approved",
            message=f"Your result for {event.course_label} has been approved at {level} level.",
            notification_type=NOTIFICATION_TYPE,
            data=data,
        )
    ]
    if event.tier == ApprovalTier.SENATE:
        payloads.append(
            NotificationPayload(
                recipient_id=event.student_id,
                title="Result Finalized",
                message=(
                    f"Your result for {event.course_label} has been finalized "
                    "and is now available."
                ),
                notification_type=NOTIFICATION_TYPE,
                data=data,
            )
        )
    return payloads


def force_approval_notifications(
    record_id: str,
    student_id: str,
    label: str,
) -> list[NotificationPayload]:
    """Build the notification for a force-approved result."""
    return [
        NotificationPayload(
            recipient_id=student_id,
            title="Result Finalized",
            message=f"Your result for {label} has been finalized and is now available.",
            notification_type=NOTIFICATION_TYPE,
            data={"result_id": record_id, "status": "SENATE_APPROVED", "forced": True},
        )
    ]


def resubmission_notifications(
    record_id: str,
    student_id: str,
    label: str,
) -> list[NotificationPayload]:
    """Build the notification for a corrected and resubmitted result."""
    return [
        NotificationPayload(
            recipient_id=student_id,
            title="Result Resubmitted",
            message=(
                f"Your result for {label} has been corrected and resubmitted "
                "for approval."
            ),
            notification_type=NOTIFICATION_TYPE,
            data={"result_id": record_id, "status": "PENDING"},
        )
    ]


def batch_notifications(
    events: Iterable[TransitionEvent],
    tier: ApprovalTier,
    decision: Decision,
    comments: str | None = None,
) -> list[NotificationPayload]:
    """Aggregate a batch of transitions into one message per recipient.

    Args:
        events: Transitions completed by the batch.
        tier: Tier that decided.
        decision: Decision applied by the batch.
        comments: Reviewer comments for a batch rejection.

    Returns:
        One payload per affected student, plus one per lecturer for
        rejections.
    """
    level = TIER_LABELS[tier]
    by_student: dict[str, list[TransitionEvent]] = defaultdict(list)
    by_lecturer: dict[str, list[TransitionEvent]] = defaultdict(list)

    for event in events:
        by_student[event.student_id].append(event)
        if decision == Decision.REJECT and event.lecturer_id:
            by_lecturer[event.lecturer_id].append(event)

    payloads: list[NotificationPayload] = []

    for student_id, student_events in by_student.items():
        courses = ", ".join(event.course_label for event in student_events)
        data = {
            "result_ids": [event.record_id for event in student_events],
            "level": tier.value,
            "status": student_events[0].new_status,
        }
        if decision == Decision.REJECT:
            title = "Result Rejected"
            message = f"Your results for {courses} have been rejected at {level} level."
            if comments:
                message = f"{message} Reason: {comments}"
        elif tier == ApprovalTier.SENATE:
            title = "Result Finalized"
            message = f"Your results for {courses} have been finalized and are now available."
        else:
            title = "Result Approved"
            message = f"Your results for {courses} have been approved at {level} level."
        payloads.append(
            NotificationPayload(
                recipient_id=student_id,
                title=title,
                message=message,
                notification_type=NOTIFICATION_TYPE,
                data=data,
            )
        )

    for lecturer_id, lecturer_events in by_lecturer.items():
        payloads.append(
            NotificationPayload(
                recipient_id=lecturer_id,
                title="Result Rejected",
                message=(
                    f"{len(lecturer_events)} result(s) you submitted were rejected "
                    f"at {level} level. Reason: {comments}"
                ),
                notification_type=NOTIFICATION_TYPE,
                data={
                    "result_ids": [event.record_id for event in lecturer_events],
                    "level": tier.value,
                    "comments": comments,
                },
                priority="high",
            )
        )

    return payloads
