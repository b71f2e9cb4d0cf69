"""Pricing preview endpoint."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from app.api.deps import CurrentUser, SessionDep
from app.schemas.quote import PricingPreviewRead, PricingPreviewRequest
from app.services import quote_service

router = APIRouter(prefix="/pricing", tags=["pricing"])


@router.post(
    "/preview", response_model=PricingPreviewRead, summary="Price a selection"
)
async def preview_pricing(
    payload: PricingPreviewRequest,
    session: SessionDep,
    current_user: CurrentUser,
) -> PricingPreviewRead:
    """Price selections against the account catalog without saving a quote."""
    try:
        pricing = await quote_service.preview_pricing(
            session, account_id=current_user.account_id, payload=payload
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)
        ) from exc
    return PricingPreviewRead.model_validate(pricing.to_dict())
