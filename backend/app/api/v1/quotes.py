"""Quote builder endpoints: selections, pricing and lifecycle."""

from __future__ import annotations

import uuid
from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from app.api.deps import CurrentUser, SessionDep
from app.models.quote import Quote, QuoteStatus
from app.schemas.quote import (
    QuoteCreate,
    QuoteHistoryRead,
    QuoteRead,
    QuoteSelectionsUpdate,
    QuoteStatusChange,
    QuoteStatusEventRead,
)
from app.services import quote_service
from app.services.quote_service import (
    InsuranceConflictError,
    QuoteNotEditableError,
    QuoteNotFoundError,
    StaleQuoteRevisionError,
)
from app.services.quote_state_machine import InvalidTransitionError

router = APIRouter(prefix="/quotes", tags=["quotes"])


def _http_error(exc: ValueError) -> HTTPException:
    if isinstance(exc, QuoteNotFoundError):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc))
    if isinstance(exc, (StaleQuoteRevisionError, QuoteNotEditableError)):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, InvalidTransitionError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


async def _load(session: SessionDep, quote_id: uuid.UUID, account_id: uuid.UUID) -> Quote:
    try:
        return await quote_service.get_quote(
            session, quote_id=quote_id, account_id=account_id
        )
    except QuoteNotFoundError as exc:
        raise _http_error(exc) from exc


@router.get("", response_model=list[QuoteRead], summary="List quotes")
async def list_quotes(
    session: SessionDep,
    current_user: CurrentUser,
    customer_id: uuid.UUID | None = None,
    location_id: uuid.UUID | None = None,
    status_filter: Annotated[QuoteStatus | None, Query(alias="status")] = None,
    skip: int = 0,
    limit: int = 50,
) -> list[QuoteRead]:
    quotes = await quote_service.list_quotes(
        session,
        account_id=current_user.account_id,
        customer_id=customer_id,
        location_id=location_id,
        status=status_filter,
        skip=skip,
        limit=limit,
    )
    return [QuoteRead.model_validate(quote) for quote in quotes]


@router.post(
    "",
    response_model=QuoteRead,
    status_code=status.HTTP_201_CREATED,
    summary="Start a quote",
)
async def create_quote(
    payload: QuoteCreate,
    session: SessionDep,
    current_user: CurrentUser,
) -> QuoteRead:
    try:
        quote = await quote_service.create_quote(
            session,
            account_id=current_user.account_id,
            user=current_user,
            payload=payload,
        )
    except ValueError as exc:
        raise _http_error(exc) from exc
    return QuoteRead.model_validate(quote)


@router.get("/{quote_id}", response_model=QuoteRead, summary="Get quote")
async def read_quote(
    quote_id: uuid.UUID,
    session: SessionDep,
    current_user: CurrentUser,
) -> QuoteRead:
    quote = await _load(session, quote_id, current_user.account_id)
    return QuoteRead.model_validate(quote)


@router.patch(
    "/{quote_id}/selections",
    response_model=QuoteRead,
    summary="Save selections and re-price",
)
async def update_selections(
    quote_id: uuid.UUID,
    payload: QuoteSelectionsUpdate,
    session: SessionDep,
    current_user: CurrentUser,
) -> QuoteRead:
    quote = await _load(session, quote_id, current_user.account_id)
    try:
        updated = await quote_service.update_selections(
            session, quote=quote, payload=payload, user=current_user
        )
    except InsuranceConflictError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    except ValueError as exc:
        raise _http_error(exc) from exc
    return QuoteRead.model_validate(updated)


@router.post(
    "/{quote_id}/status", response_model=QuoteRead, summary="Change quote status"
)
async def change_status(
    quote_id: uuid.UUID,
    payload: QuoteStatusChange,
    session: SessionDep,
    current_user: CurrentUser,
) -> QuoteRead:
    quote = await _load(session, quote_id, current_user.account_id)
    try:
        await quote_service.transition_status(
            session,
            quote=quote,
            target=payload.status,
            user=current_user,
            reason=payload.reason,
        )
    except ValueError as exc:
        raise _http_error(exc) from exc
    refreshed = await _load(session, quote_id, current_user.account_id)
    return QuoteRead.model_validate(refreshed)


@router.get(
    "/{quote_id}/history",
    response_model=QuoteHistoryRead,
    summary="Quote status history",
)
async def read_history(
    quote_id: uuid.UUID,
    session: SessionDep,
    current_user: CurrentUser,
) -> QuoteHistoryRead:
    quote = await _load(session, quote_id, current_user.account_id)
    events, next_statuses = await quote_service.list_history(
        session, quote=quote, user=current_user
    )
    return QuoteHistoryRead(
        quote_id=quote.id,
        status=quote.status,
        next_statuses=next_statuses,
        events=[QuoteStatusEventRead.model_validate(event) for event in events],
    )
