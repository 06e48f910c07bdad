"""Domain models for mp_catalog: pure dataclasses, no business logic."""

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Product:
    id: str
    seller_id: str
    name: str
    description: str | None
    price: int          # minor units
    status: str         # ProductStatus value
    location: str | None
    created_at: datetime
    updated_at: datetime

    @property
    def is_active(self) -> bool:
        return self.status == "active"
