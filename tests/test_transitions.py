import types

import pytest

from fieldservice.errors import ErrorCode
from fieldservice.services.transitions import (
    ACTION_ACCEPT,
    ACTION_CONVERT_PROJECT,
    ACTION_CONVERT_TICKET,
    ACTION_REJECT,
    ACTION_SEND,
    ACTION_VIEW,
    allowed_actions,
    validate_transition,
)


def _est(status, ticket=None, project=None):
    return types.SimpleNamespace(status=status, converted_to_ticket_id=ticket, converted_to_project_id=project)


@pytest.mark.parametrize(
    "status,action,target,stamp",
    [
        ("draft", ACTION_SEND, "sent", "sent_date"),
        ("sent", ACTION_VIEW, "viewed", "viewed_date"),
        ("sent", ACTION_ACCEPT, "accepted", "accepted_date"),
        ("viewed", ACTION_ACCEPT, "accepted", "accepted_date"),
        ("viewed", ACTION_REJECT, "rejected", "rejected_date"),
        ("accepted", ACTION_CONVERT_TICKET, "converted", "conversion_date"),
        ("accepted", ACTION_CONVERT_PROJECT, "converted", "conversion_date"),
    ],
)
def test_allowed_moves(status, action, target, stamp):
    r = validate_transition(_est(status), action)
    assert r
    assert r.target == target
    assert r.stamp_field == stamp


@pytest.mark.parametrize(
    "status,action",
    [
        ("draft", ACTION_ACCEPT),
        ("draft", ACTION_CONVERT_TICKET),
        ("sent", ACTION_SEND),
        ("rejected", ACTION_ACCEPT),
        ("accepted", ACTION_REJECT),
        ("converted", ACTION_SEND),
    ],
)
def test_refused_moves(status, action):
    r = validate_transition(_est(status), action)
    assert not r
    assert r.error == ErrorCode.INVALID_TRANSITION
    assert status in r.message


def test_second_conversion_reports_already_converted():
    r = validate_transition(_est("converted", ticket=12), ACTION_CONVERT_PROJECT)
    assert r.error == ErrorCode.ALREADY_CONVERTED

    # a stray reference on an accepted row still blocks conversion
    r = validate_transition(_est("accepted", project=4), ACTION_CONVERT_TICKET)
    assert r.error == ErrorCode.ALREADY_CONVERTED


def test_unknown_action():
    r = validate_transition(_est("draft"), "archive")
    assert r.error == ErrorCode.VALIDATION


def test_allowed_actions_per_status():
    assert allowed_actions(_est("draft")) == [ACTION_SEND]
    assert allowed_actions(_est("sent")) == [ACTION_VIEW, ACTION_ACCEPT, ACTION_REJECT]
    assert allowed_actions(_est("accepted")) == [ACTION_CONVERT_TICKET, ACTION_CONVERT_PROJECT]
    assert allowed_actions(_est("converted", ticket=1)) == []
    assert allowed_actions(_est("rejected")) == []
