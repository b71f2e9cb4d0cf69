"""Schema exports."""

from app.schemas.auth import Token
from app.schemas.catalog import CatalogOptionRead, CatalogPublish, CatalogRead
from app.schemas.customer import CustomerCreate, CustomerRead, CustomerUpdate
from app.schemas.location import LocationCreate, LocationRead, LocationUpdate
from app.schemas.quote import (
    PricingPreviewRead,
    PricingPreviewRequest,
    QuoteCreate,
    QuoteHistoryRead,
    QuoteRead,
    QuoteSelectionsUpdate,
    QuoteStatusChange,
)
from app.schemas.second_pair import (
    ApplySecondPairRequest,
    ApplySecondPairResponse,
    EligibilityResponse,
)
from app.schemas.user import UserCreate, UserRead

__all__ = [
    "ApplySecondPairRequest",
    "ApplySecondPairResponse",
    "CatalogOptionRead",
    "CatalogPublish",
    "CatalogRead",
    "CustomerCreate",
    "CustomerRead",
    "CustomerUpdate",
    "EligibilityResponse",
    "LocationCreate",
    "LocationRead",
    "LocationUpdate",
    "PricingPreviewRead",
    "PricingPreviewRequest",
    "QuoteCreate",
    "QuoteHistoryRead",
    "QuoteRead",
    "QuoteSelectionsUpdate",
    "QuoteStatusChange",
    "Token",
    "UserCreate",
    "UserRead",
]
