"""
Estimate status machine.

    draft -> sent -> (viewed) -> accepted | rejected
    accepted -> converted   (ticket or project, once)

``validate_transition`` is the single gate every status change goes through;
it does not touch the database.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fieldservice.errors import ErrorCode
from fieldservice.models.estimate import (
    STATUS_ACCEPTED,
    STATUS_CONVERTED,
    STATUS_DRAFT,
    STATUS_REJECTED,
    STATUS_SENT,
    STATUS_VIEWED,
)

ACTION_SEND = "send"
ACTION_VIEW = "view"
ACTION_ACCEPT = "accept"
ACTION_REJECT = "reject"
ACTION_CONVERT_TICKET = "convert_ticket"
ACTION_CONVERT_PROJECT = "convert_project"

# action -> (allowed source states, target state, timestamp column)
TRANSITIONS = {
    ACTION_SEND: ((STATUS_DRAFT,), STATUS_SENT, "sent_date"),
    ACTION_VIEW: ((STATUS_SENT,), STATUS_VIEWED, "viewed_date"),
    ACTION_ACCEPT: ((STATUS_SENT, STATUS_VIEWED), STATUS_ACCEPTED, "accepted_date"),
    ACTION_REJECT: ((STATUS_SENT, STATUS_VIEWED), STATUS_REJECTED, "rejected_date"),
    ACTION_CONVERT_TICKET: ((STATUS_ACCEPTED,), STATUS_CONVERTED, "conversion_date"),
    ACTION_CONVERT_PROJECT: ((STATUS_ACCEPTED,), STATUS_CONVERTED, "conversion_date"),
}

CONVERSIONS = (ACTION_CONVERT_TICKET, ACTION_CONVERT_PROJECT)


@dataclass(frozen=True)
class TransitionResult:
    ok: bool
    action: str
    target: Optional[str] = None
    stamp_field: Optional[str] = None
    error: Optional[ErrorCode] = None
    message: Optional[str] = None

    def __bool__(self) -> bool:
        return self.ok


def _fail(action: str, code: ErrorCode, message: str) -> TransitionResult:
    return TransitionResult(ok=False, action=action, error=code, message=message)


def validate_transition(estimate, action: str) -> TransitionResult:
    if action not in TRANSITIONS:
        return _fail(action, ErrorCode.VALIDATION, f"Unknown action {action!r}.")

    sources, target, stamp = TRANSITIONS[action]

    if action in CONVERSIONS and (
        getattr(estimate, "converted_to_ticket_id", None) or getattr(estimate, "converted_to_project_id", None)
    ):
        return _fail(action, ErrorCode.ALREADY_CONVERTED, "This estimate has already been converted.")

    if estimate.status not in sources:
        return _fail(
            action,
            ErrorCode.INVALID_TRANSITION,
            f"Cannot {action.replace('_', ' ')} an estimate that is {estimate.status}.",
        )

    return TransitionResult(ok=True, action=action, target=target, stamp_field=stamp)


def allowed_actions(estimate) -> list[str]:
    """Actions that would pass validation right now (drives UI buttons)."""
    return [a for a in TRANSITIONS if validate_transition(estimate, a).ok]
