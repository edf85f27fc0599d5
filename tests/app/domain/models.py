"""테스트용 도메인 모델."""

from __future__ import annotations

import uuid
from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from fastuow import IdentifiedEntity


@dataclass
class Product(IdentifiedEntity[uuid.UUID]):
    """UUID 식별자를 가지는 상품 모델입니다. 식별자는 UoW 가 생성합니다."""

    name: str = ""
    price: int = 0


@dataclass
class OrderLine(IdentifiedEntity[int]):
    """DB 가 할당하는 정수 식별자를 가지는 주문선 모델입니다."""

    orderid: str = ""
    sku: str = ""
    qty: int = 0
    eta: Optional[datetime] = None


@dataclass
class StockEvent:
    """감사 필드가 없는 단순 엔티티. 식별자는 호출자가 지정합니다."""

    __id_field__ = "ref"

    ref: str = ""
    sku: str = ""
    qty: int = 0
    note: Optional[str] = None


ENTITIES = [Product, OrderLine, StockEvent]
