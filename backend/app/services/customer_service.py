"""Customer management services."""

from __future__ import annotations

import uuid

from sqlalchemy import Select, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.customer import Customer
from app.schemas.customer import CustomerCreate, CustomerUpdate


async def list_customers(
    session: AsyncSession,
    *,
    account_id: uuid.UUID,
    search: str | None = None,
    skip: int = 0,
    limit: int = 50,
) -> list[Customer]:
    """Return customers for an account, optionally filtered by name or email."""
    stmt: Select[tuple[Customer]] = select(Customer).where(
        Customer.account_id == account_id
    )
    if search:
        pattern = f"%{search.strip()}%"
        stmt = stmt.where(
            or_(
                Customer.first_name.ilike(pattern),
                Customer.last_name.ilike(pattern),
                Customer.email.ilike(pattern),
            )
        )
    stmt = stmt.order_by(Customer.last_name, Customer.first_name)
    stmt = stmt.offset(skip).limit(min(limit, 100))
    result = await session.execute(stmt)
    return list(result.scalars().all())


async def get_customer(
    session: AsyncSession,
    *,
    customer_id: uuid.UUID,
    account_id: uuid.UUID,
) -> Customer | None:
    """Fetch a customer owned by the account."""
    customer = await session.get(Customer, customer_id)
    if customer is None or customer.account_id != account_id:
        return None
    return customer


async def create_customer(
    session: AsyncSession, *, account_id: uuid.UUID, payload: CustomerCreate
) -> Customer:
    """Create a customer with an optional insurance record."""
    data = payload.model_dump(exclude={"insurance_benefits"})
    customer = Customer(
        account_id=account_id,
        insurance_benefits=payload.insurance_benefits.model_dump(mode="json"),
        **data,
    )
    session.add(customer)
    await session.commit()
    await session.refresh(customer)
    return customer


async def update_customer(
    session: AsyncSession, customer: Customer, payload: CustomerUpdate
) -> Customer:
    """Update mutable fields; existing quotes keep their insurance snapshot."""
    updates = payload.model_dump(exclude_unset=True, exclude={"insurance_benefits"})
    for field, value in updates.items():
        setattr(customer, field, value)
    if "insurance_benefits" in payload.model_fields_set:
        benefits = payload.insurance_benefits
        customer.insurance_benefits = (
            benefits.model_dump(mode="json") if benefits is not None else {}
        )
    await session.commit()
    await session.refresh(customer)
    return customer
