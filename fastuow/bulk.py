"""벌크 로드 프로토콜.

행 단위로 N 번 왕복하는 대신 집합 단위로 한번에 적재합니다. 모든 DB 백엔드가
지원할 필요는 없으며, 지원하는 로더가 없으면 UoW 는 행 단위로 조용히 대체하지
않고 :class:`~fastuow.core.errors.UnsupportedCapabilityError` 를 던집니다.
"""
from __future__ import annotations

import abc
from typing import Any, Iterable, Optional, Sequence

from sqlalchemy import Table, insert
from sqlalchemy.ext.asyncio import AsyncConnection

from fastuow.logging import get_logger

logger = get_logger("fastuow.bulk")

Row = Sequence[Any]


class BulkLoader(abc.ABC):
    """벌크 로드 프로토콜의 추상 인터페이스 입니다."""

    name: str = "bulk"

    @abc.abstractmethod
    def supports(self, connection: AsyncConnection) -> bool:
        """커넥션(다이얼렉트/드라이버)이 이 로더를 지원하는지 확인합니다.

        저장소에 접근하지 않고 판단해야 합니다.
        """
        raise NotImplementedError

    @abc.abstractmethod
    async def load(
        self,
        connection: AsyncConnection,
        table: Table,
        columns: Sequence[str],
        rows: Sequence[Row],
    ) -> int:
        """``rows`` 를 ``table`` 에 적재합니다. 컬럼은 이름으로 매핑됩니다.

        Returns:
            적재한 행 수.
        """
        raise NotImplementedError


class InsertManyValuesLoader(BulkLoader):
    """SqlAlchemy 의 executemany 경로로 모든 행을 한번의 호출로 전송합니다.

    "insertmanyvalues" 를 지원하는 dialect 에서만 사용하며, 이 경우 행들은
    ``page_size`` 단위의 ``INSERT ... VALUES (...), (...)`` 구문이나 드라이버의
    ``executemany()`` 로 묶여 전송됩니다.
    """

    name = "insertmanyvalues"

    def __init__(self, page_size: Optional[int] = None):
        self.page_size = page_size

    def __repr__(self) -> str:
        return f"InsertManyValuesLoader[page_size={self.page_size}]"

    def supports(self, connection: AsyncConnection) -> bool:
        return bool(getattr(connection.dialect, "use_insertmanyvalues", False))

    async def load(
        self,
        connection: AsyncConnection,
        table: Table,
        columns: Sequence[str],
        rows: Sequence[Row],
    ) -> int:
        if not rows:
            return 0

        options = {}
        if self.page_size:
            options["insertmanyvalues_page_size"] = self.page_size

        params = [dict(zip(columns, row)) for row in rows]
        await connection.execute(
            insert(table), params, execution_options=options or None
        )
        logger.debug("%s: %d rows loaded into %s", self.name, len(rows), table.name)
        return len(rows)


def default_loaders() -> list[BulkLoader]:
    return [InsertManyValuesLoader()]


def find_loader(
    loaders: Iterable[BulkLoader], connection: AsyncConnection
) -> Optional[BulkLoader]:
    """커넥션을 지원하는 첫번째 로더를 리턴합니다."""
    return next((it for it in loaders if it.supports(connection)), None)
