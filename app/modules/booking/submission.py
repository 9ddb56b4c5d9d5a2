"""Per-attempt state machine for the booking/payment protocol."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from uuid import UUID

from app.core.enums import SubmissionStateEnum
from app.modules.booking.models import Booking
from app.modules.payments.gateway import GatewayOrder
from app.shared.exceptions import ConflictException

logger = logging.getLogger(__name__)

_TRANSITIONS: dict[SubmissionStateEnum, frozenset[SubmissionStateEnum]] = {
    SubmissionStateEnum.INIT: frozenset({SubmissionStateEnum.VALIDATING}),
    SubmissionStateEnum.VALIDATING: frozenset({SubmissionStateEnum.CREATING_BOOKING}),
    SubmissionStateEnum.CREATING_BOOKING: frozenset({SubmissionStateEnum.CREATING_ORDER}),
    SubmissionStateEnum.CREATING_ORDER: frozenset({SubmissionStateEnum.AWAITING_PAYMENT}),
    SubmissionStateEnum.AWAITING_PAYMENT: frozenset({SubmissionStateEnum.VERIFYING}),
    SubmissionStateEnum.VERIFYING: frozenset({SubmissionStateEnum.CONFIRMED}),
    SubmissionStateEnum.CONFIRMED: frozenset(),
    SubmissionStateEnum.FAILED: frozenset(),
}

_TERMINAL = frozenset({SubmissionStateEnum.CONFIRMED, SubmissionStateEnum.FAILED})


@dataclass(slots=True)
class SubmissionAttempt:
    """Tracks one attempt through INIT ... CONFIRMED, or into FAILED from anywhere."""

    booking_id: UUID | None = None
    state: SubmissionStateEnum = SubmissionStateEnum.INIT
    failure_code: str | None = None
    failure_reason: str | None = None
    history: list[SubmissionStateEnum] = field(default_factory=list)

    def __post_init__(self) -> None:
        if not self.history:
            self.history.append(self.state)

    @classmethod
    def resume(
        cls,
        booking_id: UUID,
        state: SubmissionStateEnum = SubmissionStateEnum.AWAITING_PAYMENT,
    ) -> SubmissionAttempt:
        """Pick an attempt back up in a later request (callback, cancel, retry)."""
        return cls(booking_id=booking_id, state=state)

    @property
    def is_terminal(self) -> bool:
        return self.state in _TERMINAL

    def advance(self, next_state: SubmissionStateEnum) -> None:
        if next_state not in _TRANSITIONS[self.state]:
            raise ConflictException(
                f"Invalid submission transition: {self.state} -> {next_state}",
            )
        logger.debug("Submission %s: %s -> %s", self.booking_id, self.state, next_state)
        self.state = next_state
        self.history.append(next_state)

    def fail(self, code: str, reason: str) -> None:
        if self.state == SubmissionStateEnum.CONFIRMED:
            raise ConflictException("Confirmed submission cannot fail")
        logger.info(
            "Submission %s failed at %s: %s (%s)",
            self.booking_id,
            self.state,
            code,
            reason,
        )
        self.failure_code = code
        self.failure_reason = reason
        self.state = SubmissionStateEnum.FAILED
        self.history.append(SubmissionStateEnum.FAILED)


@dataclass(slots=True)
class SubmissionResult:
    """Outcome of a guard operation handed back to the router."""

    booking: Booking
    attempt: SubmissionAttempt
    order: GatewayOrder | None = None
    key_id: str | None = None
