"""Quote lifecycle transitions and the rules guarding them."""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

from app.models import QuoteStatus, TransitionCategory

VALID_TRANSITIONS: dict[QuoteStatus, frozenset[QuoteStatus]] = {
    QuoteStatus.BUILDING: frozenset(
        {QuoteStatus.DRAFT, QuoteStatus.PRESENTED, QuoteStatus.CANCELLED}
    ),
    QuoteStatus.DRAFT: frozenset(
        {
            QuoteStatus.BUILDING,
            QuoteStatus.PRESENTED,
            QuoteStatus.CANCELLED,
            QuoteStatus.EXPIRED,
        }
    ),
    QuoteStatus.PRESENTED: frozenset(
        {
            QuoteStatus.BUILDING,
            QuoteStatus.DRAFT,
            QuoteStatus.SIGNED,
            QuoteStatus.CANCELLED,
            QuoteStatus.EXPIRED,
        }
    ),
    QuoteStatus.SIGNED: frozenset({QuoteStatus.COMPLETED, QuoteStatus.CANCELLED}),
    QuoteStatus.COMPLETED: frozenset(),
    QuoteStatus.CANCELLED: frozenset(),
    QuoteStatus.EXPIRED: frozenset({QuoteStatus.BUILDING, QuoteStatus.DRAFT}),
}

TERMINAL_STATUSES = frozenset({QuoteStatus.COMPLETED, QuoteStatus.CANCELLED})
EDITABLE_STATUSES = frozenset({QuoteStatus.BUILDING, QuoteStatus.DRAFT})
EXPIRABLE_STATUSES = frozenset({QuoteStatus.DRAFT, QuoteStatus.PRESENTED})
SYSTEM_ONLY_STATUSES = frozenset({QuoteStatus.EXPIRED})

_DEFAULT_REASONS: dict[tuple[QuoteStatus | None, QuoteStatus], str] = {
    (QuoteStatus.BUILDING, QuoteStatus.DRAFT): "Quote saved as draft",
    (QuoteStatus.BUILDING, QuoteStatus.PRESENTED): "Quote presented to customer",
    (QuoteStatus.DRAFT, QuoteStatus.PRESENTED): "Draft quote presented to customer",
    (QuoteStatus.PRESENTED, QuoteStatus.SIGNED): "Customer accepted and signed quote",
    (QuoteStatus.SIGNED, QuoteStatus.COMPLETED): "Quote fulfillment completed",
    (QuoteStatus.SIGNED, QuoteStatus.CANCELLED): "Signed quote cancelled",
    (QuoteStatus.DRAFT, QuoteStatus.EXPIRED): "Quote auto-expired after inactivity",
    (QuoteStatus.PRESENTED, QuoteStatus.EXPIRED): "Presented quote auto-expired",
}


class InvalidTransitionError(ValueError):
    """Raised when a quote cannot move to the requested status."""


@dataclass(frozen=True, slots=True)
class StateRequirements:
    has_valid_items: bool
    has_customer_info: bool
    has_payment_info: bool

    @classmethod
    def evaluate(
        cls,
        *,
        subtotal: Decimal,
        customer_name: str | None,
        insurance_carrier: str | None,
        patient_responsibility: Decimal,
    ) -> "StateRequirements":
        return cls(
            has_valid_items=subtotal > 0,
            has_customer_info=bool(customer_name and customer_name.strip()),
            has_payment_info=bool(insurance_carrier) or patient_responsibility > 0,
        )


def can_transition(current: QuoteStatus, target: QuoteStatus) -> bool:
    return target in VALID_TRANSITIONS.get(current, frozenset())


def can_edit(status: QuoteStatus) -> bool:
    return status in EDITABLE_STATUSES


def is_terminal(status: QuoteStatus) -> bool:
    return status in TERMINAL_STATUSES


def validate_transition(
    current: QuoteStatus,
    target: QuoteStatus,
    requirements: StateRequirements,
    *,
    is_manager: bool = False,
    system: bool = False,
) -> TransitionCategory:
    """Check a transition and return the category it is recorded under.

    Raises :class:`InvalidTransitionError` with a user-facing message when the
    transition is not allowed.
    """

    if not can_transition(current, target):
        raise InvalidTransitionError(
            f"Invalid transition from {current.value} to {target.value}"
        )
    if target in SYSTEM_ONLY_STATUSES and not system:
        raise InvalidTransitionError(f"Quotes can only be {target.value} by the system")

    if target is QuoteStatus.DRAFT and not requirements.has_valid_items:
        raise InvalidTransitionError(
            "Quote must have at least one service or product before saving as draft"
        )
    if target is QuoteStatus.PRESENTED:
        if not requirements.has_customer_info:
            raise InvalidTransitionError(
                "Customer information is required before presenting quote"
            )
        if not requirements.has_valid_items:
            raise InvalidTransitionError(
                "Quote must have services or products before presentation"
            )
    if target is QuoteStatus.SIGNED and not requirements.has_payment_info:
        raise InvalidTransitionError(
            "Payment information is required before marking as signed"
        )
    if target is QuoteStatus.CANCELLED and current is QuoteStatus.SIGNED:
        if not is_manager:
            raise InvalidTransitionError(
                "Manager approval required to cancel signed quote"
            )
        return TransitionCategory.BUSINESS_RULE

    if system:
        return TransitionCategory.SYSTEM_ACTION
    return TransitionCategory.USER_ACTION


def next_valid_statuses(
    current: QuoteStatus,
    requirements: StateRequirements,
    *,
    is_manager: bool = False,
) -> list[QuoteStatus]:
    """Return the statuses a user could move the quote to right now."""

    allowed: list[QuoteStatus] = []
    for target in sorted(VALID_TRANSITIONS.get(current, frozenset()), key=lambda s: s.value):
        try:
            validate_transition(current, target, requirements, is_manager=is_manager)
        except InvalidTransitionError:
            continue
        allowed.append(target)
    return allowed


def default_reason(current: QuoteStatus | None, target: QuoteStatus) -> str:
    if target is QuoteStatus.CANCELLED and (current, target) not in _DEFAULT_REASONS:
        return "Quote cancelled"
    return _DEFAULT_REASONS.get((current, target), f"Quote moved to {target.value}")


__all__ = [
    "EDITABLE_STATUSES",
    "EXPIRABLE_STATUSES",
    "InvalidTransitionError",
    "StateRequirements",
    "TERMINAL_STATUSES",
    "VALID_TRANSITIONS",
    "can_edit",
    "can_transition",
    "default_reason",
    "is_terminal",
    "next_valid_statuses",
    "validate_transition",
]
