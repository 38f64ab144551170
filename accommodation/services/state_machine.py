"""
Request State Machine
Legal status transitions of an accommodation request
"""
from typing import Dict, FrozenSet, Iterable

from accommodation.models.request import RequestStatus
from accommodation.services.errors import InvalidTransition


# RESERVED -> RESERVED is the correction path of the reservation step
TRANSITIONS: Dict[RequestStatus, FrozenSet[RequestStatus]] = {
    RequestStatus.AWAITING_MANAGER: frozenset({
        RequestStatus.AWAITING_RESERVATION,
        RequestStatus.REJECTED,
    }),
    RequestStatus.AWAITING_RESERVATION: frozenset({RequestStatus.RESERVED}),
    RequestStatus.RESERVED: frozenset({RequestStatus.RESERVED}),
    RequestStatus.REJECTED: frozenset(),
}


def can_transition(current: RequestStatus, target: RequestStatus) -> bool:
    return target in TRANSITIONS.get(current, frozenset())


def ensure_status(request, allowed: Iterable[RequestStatus], operation: str) -> None:
    """Fail with InvalidTransition unless the request is in one of `allowed`"""
    allowed = tuple(allowed)
    if request.status not in allowed:
        expected = ", ".join(s.value for s in allowed)
        raise InvalidTransition(
            f"Cannot {operation} a request in status {request.status.value} "
            f"(expected {expected})"
        )


def transition(request, target: RequestStatus) -> None:
    """Move the request to `target`, leaving it unchanged when illegal"""
    if not can_transition(request.status, target):
        raise InvalidTransition(
            f"Transition {request.status.value} -> {target.value} is not allowed"
        )
    request.status = target
