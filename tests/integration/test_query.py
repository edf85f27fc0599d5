from __future__ import annotations

from dataclasses import dataclass

import pytest

from fastuow import StoreError
from tests import random_name
from tests.app.domain.models import Product


@dataclass
class PriceSummary:
    name: str
    price: int


async def seed(factory, *prices: int) -> list[Product]:
    products = [Product(name=random_name(), price=price) for price in prices]
    async with factory.create_unit_of_work() as uow:
        for product in products:
            await uow.insert(product)
        await uow.commit()
    return products


@pytest.mark.asyncio
async def test_query_binds_named_parameters(factory):
    await seed(factory, 100, 200, 300)

    async with factory.create_unit_of_work() as uow:
        rows = await uow.query(
            "SELECT name, price FROM Product WHERE price >= :min ORDER BY price",
            {"min": 200},
        )

    assert [row.price for row in rows] == [200, 300]


@pytest.mark.asyncio
async def test_query_maps_rows_to_entities(factory):
    products = await seed(factory, 10, 20)

    async with factory.create_unit_of_work() as uow:
        fetched = await uow.query("SELECT * FROM Product ORDER BY price", as_type=Product)

    assert [it.id for it in fetched] == [it.id for it in products]
    assert fetched[0].created == products[0].created
    assert fetched[0].created_by == "tester"


@pytest.mark.asyncio
async def test_query_maps_rows_by_column_name(factory):
    (product,) = await seed(factory, 10)

    async with factory.create_unit_of_work() as uow:
        (summary,) = await uow.query(
            "SELECT name, price FROM Product", as_type=PriceSummary
        )

    assert summary == PriceSummary(product.name, 10)


@pytest.mark.asyncio
async def test_query_single_returns_scalar(factory):
    await seed(factory, 1, 2, 3)

    async with factory.create_unit_of_work() as uow:
        total = await uow.query_single("SELECT sum(price) FROM Product", as_type=int)

    assert total == 6


@pytest.mark.asyncio
async def test_query_single_requires_exactly_one_row(factory):
    await seed(factory, 1, 2)

    async with factory.create_unit_of_work() as uow:
        with pytest.raises(StoreError):
            await uow.query_single("SELECT * FROM Product WHERE price > 10")
        with pytest.raises(StoreError):
            await uow.query_single("SELECT * FROM Product")


@pytest.mark.asyncio
async def test_query_first_or_default(factory):
    await seed(factory, 5, 7)

    async with factory.create_unit_of_work() as uow:
        missing = await uow.query_first_or_default(
            "SELECT * FROM Product WHERE price = :price", {"price": 99}, Product
        )
        first = await uow.query_first_or_default(
            "SELECT price FROM Product ORDER BY price DESC", as_type=int
        )

    assert missing is None
    assert first == 7


@pytest.mark.asyncio
async def test_execute_returns_affected_rows(factory):
    await seed(factory, 1, 2, 3)

    async with factory.create_unit_of_work() as uow:
        count = await uow.execute(
            "UPDATE Product SET price = price * 10 WHERE price < :limit", {"limit": 3}
        )
        await uow.commit()

    async with factory.create_unit_of_work() as uow:
        prices = await uow.query("SELECT price FROM Product ORDER BY price", as_type=int)

    assert count == 2
    assert prices == [3, 10, 20]


@pytest.mark.asyncio
async def test_raw_statements_share_the_transaction(factory):
    await seed(factory, 1)

    async with factory.create_unit_of_work() as uow:
        assert await uow.execute("DELETE FROM Product") == 1
        assert await uow.query("SELECT * FROM Product") == []
        await uow.rollback()

    async with factory.create_unit_of_work() as uow:
        assert len(await uow.get_all(Product)) == 1


@pytest.mark.asyncio
async def test_invalid_sql_raises_store_error(factory):
    async with factory.create_unit_of_work() as uow:
        with pytest.raises(StoreError):
            await uow.query("SELECT * FROM NoSuchTable")
