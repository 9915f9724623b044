import pytest

from webhook_service.core.exceptions import InvalidStatusTransitionError
from webhook_service.domain.enums import WebhookEventStatus as S
from webhook_service.services.state_machine import validate_event_transition


@pytest.mark.parametrize(
    ("current", "new"),
    [
        (S.RECEIVED, S.ROUTED),
        (S.ROUTED, S.SUCCESS),
        (S.ROUTED, S.FAILED),
    ],
)
def test_forward_transitions_allowed(current, new):
    validate_event_transition(current, new)


@pytest.mark.parametrize(
    ("current", "new"),
    [
        (S.RECEIVED, S.SUCCESS),
        (S.RECEIVED, S.FAILED),
        (S.RECEIVED, S.RECEIVED),
        (S.ROUTED, S.RECEIVED),
        (S.ROUTED, S.ROUTED),
        (S.SUCCESS, S.FAILED),
        (S.SUCCESS, S.ROUTED),
        (S.FAILED, S.SUCCESS),
        (S.FAILED, S.RECEIVED),
    ],
)
def test_backward_skipping_and_terminal_transitions_rejected(current, new):
    with pytest.raises(InvalidStatusTransitionError):
        validate_event_transition(current, new)
