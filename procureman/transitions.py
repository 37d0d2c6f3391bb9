"""
Purchase request state machine.

    pending ──► approved ──► batched ──► ordered ──► received
       │           │            │           ▲
       ▼           └────────────┼───────────┘
    rejected                    │
                 batched ──► approved   (remove from lot, return to pool)
                 ordered ──► approved | batched   (cancel order)

rejected and received are terminal.
"""

from procureman.exceptions import InvalidStateError
from procureman.models.enums import RequestStatus

TRANSITIONS: dict[str, frozenset] = {
    RequestStatus.PENDING: frozenset({RequestStatus.APPROVED, RequestStatus.REJECTED}),
    RequestStatus.APPROVED: frozenset({RequestStatus.BATCHED, RequestStatus.ORDERED}),
    RequestStatus.BATCHED: frozenset({RequestStatus.APPROVED, RequestStatus.ORDERED}),
    RequestStatus.ORDERED: frozenset({
        RequestStatus.RECEIVED,
        RequestStatus.APPROVED,
        RequestStatus.BATCHED,
    }),
    RequestStatus.REJECTED: frozenset(),
    RequestStatus.RECEIVED: frozenset(),
}

TERMINAL = frozenset(s for s, targets in TRANSITIONS.items() if not targets)

# Approved and not yet ordered
OPEN_STATUSES = (RequestStatus.APPROVED, RequestStatus.BATCHED)


def can_transition(current: str, target: str) -> bool:
    """Is current -> target an edge of the state graph?"""
    return target in TRANSITIONS.get(current, frozenset())


def is_terminal(status: str) -> bool:
    return status in TERMINAL


def check(current: str, target: str) -> None:
    """
    Guard a status write.

    Raises:
        InvalidStateError('INVALID_TRANSITION'): If the edge does not exist
    """
    if not can_transition(current, target):
        raise InvalidStateError('INVALID_TRANSITION', current=current, target=target)


def require(status: str, *expected: str) -> None:
    """
    Guard an operation's precondition on the current status.

    Raises:
        InvalidStateError('INVALID_STATUS'): If status is not one of expected
    """
    if status not in expected:
        raise InvalidStateError(
            'INVALID_STATUS',
            current=status,
            expected=list(expected) if len(expected) > 1 else expected[0],
        )
