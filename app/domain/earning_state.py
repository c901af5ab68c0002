"""Earning record state machine.

States:
- pending: revenue recognized, not yet withdrawable (pay-at-property before
  the stay is completed)
- available: withdrawable by the host
- paid_out: sent to the host under a payout id (terminal)
"""

import logging

from app.core.exceptions import StateConflictError
from app.domain.entities import EarningStatus

logger = logging.getLogger(__name__)

EARNING_TRANSITIONS: dict[EarningStatus, set[EarningStatus]] = {
    EarningStatus.PENDING: {EarningStatus.AVAILABLE},
    EarningStatus.AVAILABLE: {EarningStatus.PAID_OUT},
    EarningStatus.PAID_OUT: set(),
}

# Older records were written with "ready" by one of the completion paths
LEGACY_STATUS_ALIASES = {"ready": EarningStatus.AVAILABLE}


def parse_earning_status(value: str) -> EarningStatus:
    """Read a stored status, folding legacy spellings into the real states."""
    alias = LEGACY_STATUS_ALIASES.get(value)
    if alias is not None:
        logger.warning(f"Earning status '{value}' read as '{alias.value}'")
        return alias
    return EarningStatus(value)


def assert_earning_transition(current: EarningStatus, target: EarningStatus) -> None:
    """Validate earning state transition.

    Raises:
        StateConflictError: If transition is not allowed
    """
    allowed = EARNING_TRANSITIONS.get(current, set())
    if target not in allowed:
        raise StateConflictError(
            f"Invalid earning transition: {current.value} → {target.value}"
        )


def is_voidable(status: EarningStatus) -> bool:
    """Records not yet paid out can be removed when their booking is cancelled."""
    return status in (EarningStatus.PENDING, EarningStatus.AVAILABLE)
