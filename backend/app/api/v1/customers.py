"""Customer endpoints."""

from __future__ import annotations

import uuid

from fastapi import APIRouter, HTTPException, status

from app.api.deps import CurrentUser, SessionDep
from app.schemas.customer import CustomerCreate, CustomerRead, CustomerUpdate
from app.services import customer_service

router = APIRouter()


@router.get("", response_model=list[CustomerRead], summary="List customers")
async def list_customers(
    session: SessionDep,
    current_user: CurrentUser,
    search: str | None = None,
    skip: int = 0,
    limit: int = 50,
) -> list[CustomerRead]:
    customers = await customer_service.list_customers(
        session,
        account_id=current_user.account_id,
        search=search,
        skip=skip,
        limit=limit,
    )
    return [CustomerRead.model_validate(obj) for obj in customers]


@router.post(
    "",
    response_model=CustomerRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create customer",
)
async def create_customer(
    payload: CustomerCreate,
    session: SessionDep,
    current_user: CurrentUser,
) -> CustomerRead:
    customer = await customer_service.create_customer(
        session, account_id=current_user.account_id, payload=payload
    )
    return CustomerRead.model_validate(customer)


@router.get("/{customer_id}", response_model=CustomerRead, summary="Get customer")
async def read_customer(
    customer_id: uuid.UUID,
    session: SessionDep,
    current_user: CurrentUser,
) -> CustomerRead:
    customer = await customer_service.get_customer(
        session, customer_id=customer_id, account_id=current_user.account_id
    )
    if customer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    return CustomerRead.model_validate(customer)


@router.patch("/{customer_id}", response_model=CustomerRead, summary="Update customer")
async def update_customer(
    customer_id: uuid.UUID,
    payload: CustomerUpdate,
    session: SessionDep,
    current_user: CurrentUser,
) -> CustomerRead:
    customer = await customer_service.get_customer(
        session, customer_id=customer_id, account_id=current_user.account_id
    )
    if customer is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Customer not found")
    updated = await customer_service.update_customer(session, customer, payload)
    return CustomerRead.model_validate(updated)
