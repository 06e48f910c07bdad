"""Unit tests for CatalogApplicationService."""

from datetime import UTC, datetime
from unittest.mock import AsyncMock

import pytest

from src.mp_catalog.application.schemas import CreateProductRequest
from src.mp_catalog.application.service import CatalogApplicationService
from src.mp_catalog.domain.models import Product
from src.mp_common.errors import (
    InvalidPriceError,
    ProductHasOpenBidsError,
    ProductNotFoundError,
    UnauthorizedActorError,
)
from src.mp_gateway.auth.context import CurrentUser

SELLER = CurrentUser(id="seller-1")


def _make_product(product_id: str = "prd_1", status: str = "active") -> Product:
    now = datetime.now(UTC)
    return Product(
        id=product_id, seller_id="seller-1", name="Denim Jacket", description="Size M",
        price=2500, status=status, location="Pune", created_at=now, updated_at=now,
    )


class TestCreateProduct:
    async def test_creates_active_listing(self) -> None:
        repo = AsyncMock()
        repo.create_product.side_effect = lambda db, product: product
        svc = CatalogApplicationService(repo=repo)

        result = await svc.create_product(
            AsyncMock(), SELLER, CreateProductRequest(name="Denim Jacket", price=2500)
        )

        assert result.status == "active"
        assert result.seller_id == "seller-1"
        assert result.id.startswith("prd_")

    async def test_price_must_be_positive(self) -> None:
        repo = AsyncMock()
        svc = CatalogApplicationService(repo=repo)
        with pytest.raises(InvalidPriceError):
            await svc.create_product(AsyncMock(), SELLER, CreateProductRequest(name="x", price=0))
        repo.create_product.assert_not_awaited()


class TestReadProducts:
    async def test_missing_product(self) -> None:
        repo = AsyncMock()
        repo.get_product.return_value = None
        with pytest.raises(ProductNotFoundError):
            await CatalogApplicationService(repo=repo).get_product(AsyncMock(), "prd_x")

    async def test_list_defaults_to_active(self) -> None:
        repo = AsyncMock()
        repo.list_products.return_value = [_make_product()]
        await CatalogApplicationService(repo=repo).list_products(AsyncMock(), None, None, None, 20)
        assert repo.list_products.await_args.args[1] == "active"

    async def test_list_all(self) -> None:
        repo = AsyncMock()
        repo.list_products.return_value = []
        await CatalogApplicationService(repo=repo).list_products(AsyncMock(), "all", None, None, 20)
        assert repo.list_products.await_args.args[1] is None


class TestRemoveProduct:
    async def test_only_seller(self) -> None:
        repo = AsyncMock()
        repo.get_product_for_update.return_value = _make_product()
        with pytest.raises(UnauthorizedActorError):
            await CatalogApplicationService(repo=repo).remove_product(
                AsyncMock(), CurrentUser(id="buyer-1"), "prd_1"
            )

    async def test_refused_while_reserved(self) -> None:
        repo = AsyncMock()
        repo.get_product_for_update.return_value = _make_product()
        repo.mark_removed.return_value = None
        with pytest.raises(ProductHasOpenBidsError):
            await CatalogApplicationService(repo=repo).remove_product(AsyncMock(), SELLER, "prd_1")

    async def test_removed(self) -> None:
        repo = AsyncMock()
        repo.get_product_for_update.return_value = _make_product()
        repo.mark_removed.return_value = _make_product(status="removed")
        result = await CatalogApplicationService(repo=repo).remove_product(AsyncMock(), SELLER, "prd_1")
        assert result.status == "removed"
