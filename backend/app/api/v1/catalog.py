"""Price catalog endpoints."""

from __future__ import annotations

from fastapi import APIRouter, status

from app.api.deps import CurrentUser, ManagerUser, SessionDep
from app.schemas.catalog import CatalogOptionRead, CatalogPublish, CatalogRead
from app.services import catalog_service
from app.services.catalog_service import PriceCatalog, PricedOption

router = APIRouter()


def _to_read(catalog: PriceCatalog) -> CatalogRead:
    return CatalogRead(
        version=catalog.version,
        options=[CatalogOptionRead.model_validate(option) for option in catalog.options],
    )


@router.get("", response_model=CatalogRead, summary="Current price catalog")
async def read_catalog(session: SessionDep, current_user: CurrentUser) -> CatalogRead:
    catalog = await catalog_service.load_catalog(session, current_user.account_id)
    return _to_read(catalog)


@router.put(
    "",
    response_model=CatalogRead,
    status_code=status.HTTP_201_CREATED,
    summary="Publish a new catalog version",
)
async def publish_catalog(
    payload: CatalogPublish,
    session: SessionDep,
    current_user: ManagerUser,
) -> CatalogRead:
    catalog = await catalog_service.publish_catalog(
        session,
        account_id=current_user.account_id,
        options=[PricedOption(**option.model_dump()) for option in payload.options],
    )
    return _to_read(catalog)
