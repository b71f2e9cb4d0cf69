"""Quote lifecycle rules."""

from __future__ import annotations

from decimal import Decimal

import pytest

from app.models import QuoteStatus, TransitionCategory
from app.services.quote_state_machine import (
    InvalidTransitionError,
    StateRequirements,
    can_edit,
    next_valid_statuses,
    validate_transition,
)

READY = StateRequirements.evaluate(
    subtotal=Decimal("100"),
    customer_name="Riley Cash",
    insurance_carrier=None,
    patient_responsibility=Decimal("108"),
)
EMPTY = StateRequirements.evaluate(
    subtotal=Decimal("0"),
    customer_name="Riley Cash",
    insurance_carrier=None,
    patient_responsibility=Decimal("0"),
)


def test_draft_requires_items() -> None:
    with pytest.raises(InvalidTransitionError):
        validate_transition(QuoteStatus.BUILDING, QuoteStatus.DRAFT, EMPTY)
    assert (
        validate_transition(QuoteStatus.BUILDING, QuoteStatus.DRAFT, READY)
        is TransitionCategory.USER_ACTION
    )


def test_unknown_transition_rejected() -> None:
    with pytest.raises(InvalidTransitionError):
        validate_transition(QuoteStatus.BUILDING, QuoteStatus.COMPLETED, READY)
    with pytest.raises(InvalidTransitionError):
        validate_transition(QuoteStatus.COMPLETED, QuoteStatus.BUILDING, READY)


def test_only_system_can_expire() -> None:
    with pytest.raises(InvalidTransitionError):
        validate_transition(QuoteStatus.DRAFT, QuoteStatus.EXPIRED, READY)
    assert (
        validate_transition(QuoteStatus.DRAFT, QuoteStatus.EXPIRED, READY, system=True)
        is TransitionCategory.SYSTEM_ACTION
    )


def test_cancelling_signed_quote_needs_manager() -> None:
    with pytest.raises(InvalidTransitionError):
        validate_transition(QuoteStatus.SIGNED, QuoteStatus.CANCELLED, READY)
    assert (
        validate_transition(
            QuoteStatus.SIGNED, QuoteStatus.CANCELLED, READY, is_manager=True
        )
        is TransitionCategory.BUSINESS_RULE
    )


def test_next_valid_statuses() -> None:
    assert next_valid_statuses(QuoteStatus.COMPLETED, READY) == []
    assert next_valid_statuses(QuoteStatus.BUILDING, EMPTY) == [QuoteStatus.CANCELLED]
    assert QuoteStatus.EXPIRED not in next_valid_statuses(QuoteStatus.DRAFT, READY)


def test_only_building_and_draft_are_editable() -> None:
    assert can_edit(QuoteStatus.BUILDING)
    assert can_edit(QuoteStatus.DRAFT)
    assert not can_edit(QuoteStatus.PRESENTED)
