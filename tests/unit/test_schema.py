"""엔티티 기술자 단위 테스트."""
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from typing import ClassVar, Optional, Union

import pytest

from fastuow import IdentifiedEntity, IdKind, SchemaError, describe, snake_case, type_name
from fastuow.schema import NIL_UUID
from tests.app.domain.models import OrderLine, Product, StockEvent


@dataclass
class Sku(IdentifiedEntity[str]):
    title: str = ""


@dataclass
class Ledger:
    __id_field__: ClassVar[str] = "no"
    __id_kind__: ClassVar[str] = "assigned"

    no: int = 0
    amount: Decimal = Decimal(0)
    booked: date = date(2021, 1, 1)
    closed: bool = False


@dataclass
class NoIdentity:
    value: int = 0


@dataclass
class Unsupported:
    tags: list = field(default_factory=list)


def test_identifier_kind_follows_generic_argument():
    assert describe(Product).id_kind is IdKind.GENERATED
    assert describe(OrderLine).id_kind is IdKind.STORE_ASSIGNED
    assert describe(Sku).id_kind is IdKind.ASSIGNED
    assert describe(StockEvent).id_kind is IdKind.ASSIGNED
    assert describe(Ledger).id_kind is IdKind.ASSIGNED


def test_describe_is_cached_per_type():
    assert describe(Product) is describe(Product)


def test_identifier_column_comes_first():
    descriptor = describe(OrderLine)

    assert descriptor.column_names[0] == "id"
    assert descriptor.column_names[1:5] == [
        "created",
        "created_by",
        "last_modified",
        "last_modified_by",
    ]
    assert descriptor.columns[0].primary_key
    assert descriptor.columns[0].autoincrement
    assert descriptor.columns[0].python_type is int


def test_audit_columns():
    columns = {c.name: c for c in describe(Product).columns}

    assert columns["created"].insert_only and not columns["created"].nullable
    assert columns["created_by"].insert_only
    assert columns["last_modified"].nullable
    assert not columns["last_modified"].insert_only


def test_insert_columns_exclude_empty_store_assigned_id():
    descriptor = describe(OrderLine)

    assert "id" not in [c.name for c in descriptor.insert_columns()]
    assert "id" not in [c.name for c in descriptor.insert_columns(OrderLine())]
    assert "id" in [c.name for c in descriptor.insert_columns(OrderLine(id=7))]
    assert "id" in [c.name for c in describe(Product).insert_columns()]


def test_update_columns_exclude_identity_and_created():
    names = [c.name for c in describe(Product).update_columns()]

    assert names == ["last_modified", "last_modified_by", "name", "price"]


def test_ensure_id_generates_uuid_only_when_empty():
    descriptor = describe(Product)
    product = Product()
    assert descriptor.ensure_id(product)
    assert isinstance(product.id, uuid.UUID)

    existing = product.id
    assert not descriptor.ensure_id(product)
    assert product.id == existing

    nil = Product(id=NIL_UUID)
    assert descriptor.ensure_id(nil)
    assert nil.id != NIL_UUID

    line = OrderLine()
    assert not describe(OrderLine).ensure_id(line)
    assert line.id is None


def test_timestamps_are_stored_as_naive_utc():
    descriptor = describe(OrderLine)
    kst = timezone(timedelta(hours=9))
    line = OrderLine(id=1, eta=datetime(2021, 4, 11, 9, 0, tzinfo=kst))

    row = descriptor.to_row(line, descriptor.columns)

    assert row["eta"] == datetime(2021, 4, 11, 0, 0)
    assert row["created"] is None


def test_from_row_converts_raw_values():
    descriptor = describe(Product)
    id = uuid.uuid4()

    product = descriptor.from_row(
        {
            "id": id.hex,
            "created": "2021-04-11 00:30:00.000000",
            "created_by": "tester",
            "last_modified": None,
            "last_modified_by": None,
            "name": "chair",
            "price": 10,
        }
    )

    assert product.id == id
    assert product.created == datetime(2021, 4, 11, 0, 30, tzinfo=timezone.utc)
    assert product.last_modified is None


def test_from_row_converts_scalar_types():
    ledger = describe(Ledger).from_row(
        {"no": 1, "amount": 1.5, "booked": "2021-04-11", "closed": 1}
    )

    assert ledger == Ledger(1, Decimal("1.5"), date(2021, 4, 11), True)


def test_entity_without_identity_cannot_be_addressed():
    descriptor = describe(NoIdentity)

    assert descriptor.id_field is None
    with pytest.raises(SchemaError):
        descriptor.require_id()


def test_unsupported_types_are_rejected():
    with pytest.raises(SchemaError):
        describe(Unsupported)

    with pytest.raises(SchemaError):
        describe(str)


def test_table_is_cached_per_name():
    descriptor = describe(Product)

    assert descriptor.table("Product") is descriptor.table("Product")
    assert descriptor.table("ProductArchive").name == "ProductArchive"


def test_naming_strategies():
    assert type_name(OrderLine) == "OrderLine"
    assert snake_case(OrderLine) == "order_line"
    assert snake_case(Product) == "product"


def test_optional_fields_are_nullable():
    columns = {c.name: c for c in describe(StockEvent).columns}

    assert columns["note"].nullable
    assert columns["note"].python_type is str
    assert not columns["qty"].nullable


def test_union_of_several_types_is_rejected():
    @dataclass
    class Ambiguous:
        value: Optional[Union[int, str]] = None

    with pytest.raises(SchemaError):
        describe(Ambiguous)
