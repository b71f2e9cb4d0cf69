"""Second-pair discount endpoints.

Responses keep camelCase keys; failures are reported as
``{"success": false, "message": ...}`` with a matching status code.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Annotated, Any

from fastapi import APIRouter, Query, status
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.exc import SQLAlchemyError

from app.api.deps import CurrentUser, ManagerUser, SessionDep
from app.schemas.second_pair import (
    ApplySecondPairRequest,
    ApplySecondPairResponse,
    EligibilityRead,
    EligibilityResponse,
    EligibleCountRead,
    EligibleCustomerRead,
    EligibleCustomersResponse,
    SecondPairRecordRead,
    SecondPairStatsRead,
    UpdatedQuoteRead,
)
from app.services import second_pair_service
from app.services.quote_service import QuoteNotFoundError, StaleQuoteRevisionError
from app.services.second_pair_calculator import SecondPairEligibility, SecondPairError
from app.services.second_pair_service import (
    ManagerOverride,
    SecondPairForbiddenError,
    SecondPairNotEligibleError,
)

logger = logging.getLogger(__name__)

router = APIRouter(tags=["second-pair"])


def _failure(status_code: int, message: str, **extra: Any) -> JSONResponse:
    content = {"success": False, "message": message, **extra}
    return JSONResponse(status_code=status_code, content=jsonable_encoder(content))


def _eligibility_read(eligibility: SecondPairEligibility) -> EligibilityRead:
    return EligibilityRead(
        is_eligible=eligibility.is_eligible,
        status=eligibility.status.value,
        discount_type=eligibility.discount_type,
        discount_percent=eligibility.discount_percent,
        days_after_original=eligibility.days_after_original,
        original_purchase_date=eligibility.original_purchase_date,
        original_quote_id=eligibility.original_quote_id,
        reason=eligibility.reason,
    )


@router.get(
    "/quotes/apply-second-pair",
    response_model=EligibilityResponse,
    response_model_by_alias=True,
    summary="Check second pair eligibility",
)
async def check_second_pair_eligibility(
    session: SessionDep,
    current_user: CurrentUser,
    customer_id: Annotated[uuid.UUID | None, Query(alias="customerId")] = None,
    location_id: Annotated[uuid.UUID | None, Query(alias="locationId")] = None,
):
    if customer_id is None or location_id is None:
        return _failure(
            status.HTTP_400_BAD_REQUEST,
            "Missing required parameters: customerId, locationId",
        )
    eligibility = await second_pair_service.check_eligibility(
        session,
        account_id=current_user.account_id,
        customer_id=customer_id,
        location_id=location_id,
    )
    return EligibilityResponse(eligibility=_eligibility_read(eligibility))


@router.post(
    "/quotes/apply-second-pair",
    response_model=ApplySecondPairResponse,
    response_model_by_alias=True,
    summary="Apply second pair discount",
)
async def apply_second_pair(
    payload: ApplySecondPairRequest,
    session: SessionDep,
    current_user: CurrentUser,
):
    if payload.user_id is not None and payload.user_id != current_user.id:
        return _failure(
            status.HTTP_403_FORBIDDEN, "userId does not match the signed-in user"
        )
    override = None
    if payload.manager_override is not None:
        override = ManagerOverride(
            discount_percent=payload.manager_override.discount_percent,
            reason=payload.manager_override.reason,
            override_by=payload.manager_override.override_by,
        )
    try:
        applied = await second_pair_service.apply_second_pair(
            session,
            account_id=current_user.account_id,
            quote_id=payload.quote_id,
            customer_id=payload.customer_id,
            location_id=payload.location_id,
            user=current_user,
            manager_override=override,
        )
    except QuoteNotFoundError as exc:
        return _failure(status.HTTP_404_NOT_FOUND, str(exc))
    except SecondPairForbiddenError as exc:
        return _failure(status.HTTP_403_FORBIDDEN, str(exc))
    except SecondPairNotEligibleError as exc:
        return _failure(
            status.HTTP_400_BAD_REQUEST,
            str(exc),
            eligibility=_eligibility_read(exc.eligibility).model_dump(by_alias=True),
        )
    except StaleQuoteRevisionError as exc:
        return _failure(status.HTTP_409_CONFLICT, str(exc))
    except (SecondPairError, ValueError) as exc:
        return _failure(status.HTTP_400_BAD_REQUEST, str(exc))
    except SQLAlchemyError:
        logger.exception("Second pair application failed for quote %s", payload.quote_id)
        return _failure(
            status.HTTP_500_INTERNAL_SERVER_ERROR,
            "Failed to apply second pair discount; the quote was not changed",
        )

    eligibility = applied.eligibility
    return ApplySecondPairResponse(
        message=(
            f"Second pair discount applied: {applied.discount_percent}% off "
            f"({eligibility.discount_type.value if eligibility.discount_type else ''})"
        ),
        eligibility=_eligibility_read(eligibility),
        updated_quote=UpdatedQuoteRead(
            id=applied.quote.id,
            original_total=applied.original_total,
            discount_amount=applied.discount_amount,
            final_total=applied.final_total,
            discount_percent=applied.discount_percent,
        ),
        second_pair_record=SecondPairRecordRead.model_validate(applied.record),
    )


@router.get(
    "/second-pair/eligible-count",
    response_model=EligibleCountRead,
    response_model_by_alias=True,
    summary="Count customers eligible for a second pair",
)
async def eligible_count(
    session: SessionDep,
    current_user: CurrentUser,
    location_id: Annotated[uuid.UUID | None, Query(alias="locationId")] = None,
) -> EligibleCountRead:
    count = await second_pair_service.count_eligible_customers(
        session, account_id=current_user.account_id, location_id=location_id
    )
    return EligibleCountRead(count=count)


@router.get(
    "/second-pair/eligible-customers",
    response_model=EligibleCustomersResponse,
    response_model_by_alias=True,
    summary="Customers eligible for a second pair",
)
async def eligible_customers(
    session: SessionDep,
    current_user: CurrentUser,
    location_id: Annotated[uuid.UUID | None, Query(alias="locationId")] = None,
    limit: Annotated[int, Query(ge=1, le=100)] = 5,
) -> EligibleCustomersResponse:
    customers = await second_pair_service.list_eligible_customers(
        session,
        account_id=current_user.account_id,
        location_id=location_id,
        limit=limit,
    )
    listing = [
        EligibleCustomerRead(
            customer_id=item.customer_id,
            name=item.name,
            email=item.email,
            original_quote_id=item.original_quote_id,
            original_purchase_date=item.original_purchase_date,
            days_ago=item.days_ago,
            discount_type=item.discount_type,
            discount_percent=item.discount_percent,
        )
        for item in customers
    ]
    return EligibleCustomersResponse(customers=listing, total=len(listing))


@router.get(
    "/second-pair/stats",
    response_model=SecondPairStatsRead,
    response_model_by_alias=True,
    summary="Second pair statistics",
)
async def second_pair_stats(
    session: SessionDep,
    current_user: ManagerUser,
    location_id: Annotated[uuid.UUID | None, Query(alias="locationId")] = None,
    start: Annotated[datetime | None, Query(alias="startDate")] = None,
    end: Annotated[datetime | None, Query(alias="endDate")] = None,
) -> SecondPairStatsRead:
    stats = await second_pair_service.get_stats(
        session,
        account_id=current_user.account_id,
        location_id=location_id,
        start=start,
        end=end,
    )
    return SecondPairStatsRead(
        total_second_pairs=stats.total_second_pairs,
        same_day_pairs=stats.same_day_pairs,
        thirty_day_pairs=stats.thirty_day_pairs,
        manager_overrides=stats.manager_overrides,
        total_discount_amount=stats.total_discount_amount,
    )
