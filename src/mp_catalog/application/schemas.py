"""Pydantic schemas for mp_catalog API."""

from pydantic import BaseModel, Field

from config.settings import settings
from src.mp_catalog.domain.models import Product
from src.mp_common.money import minor_to_display

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class CreateProductRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=200)
    description: str | None = Field(None, max_length=5000)
    # Validated in the service so the error carries our own code (2004).
    price: int = Field(..., description="Listing price in minor units")
    location: str | None = Field(None, max_length=200)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class ProductResponse(BaseModel):
    id: str
    seller_id: str
    name: str
    description: str | None
    price: int
    price_display: str
    status: str
    location: str | None
    created_at: str

    @classmethod
    def from_domain(cls, p: Product) -> "ProductResponse":
        return cls(
            id=p.id,
            seller_id=p.seller_id,
            name=p.name,
            description=p.description,
            price=p.price,
            price_display=minor_to_display(p.price, settings.CURRENCY),
            status=p.status,
            location=p.location,
            created_at=p.created_at.isoformat(),
        )


class ProductListResponse(BaseModel):
    items: list[ProductResponse]
    next_cursor: str | None
    has_more: bool
