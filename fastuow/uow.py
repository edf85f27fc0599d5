"""UnitOfWork 패턴 모듈.

SqlAlchemy(asyncio)를 이용한 기본 구현체를 제공합니다.

UoW 하나는 커넥션 하나와 (트랜잭션 모드라면) 트랜잭션 하나를 독점하며, 다음의
상태를 거칩니다.

- 생성 → :meth:`~SqlAlchemyUnitOfWork.open` (커넥션 열기, 트랜잭션 시작)
- 0 회 이상의 작업 (insert, update, query, bulk_insert ...)
- :meth:`~SqlAlchemyUnitOfWork.commit` 또는 :meth:`~SqlAlchemyUnitOfWork.rollback`
  (첫 호출만 효과가 있고 이후 호출은 아무것도 하지 않습니다)
- :meth:`~SqlAlchemyUnitOfWork.dispose` (완료되지 않았으면 롤백 후 커넥션 반환)

한 UoW 인스턴스는 동시에 하나의 작업만 수행할 수 있습니다. 병렬 처리가 필요하면
별도의 UoW(별도의 커넥션)를 사용하세요.
"""
from __future__ import annotations

import dataclasses
from contextlib import contextmanager
from datetime import datetime, timezone
from typing import (
    Any,
    Callable,
    Generator,
    Iterable,
    Optional,
    Sequence,
    Type,
    TypeVar,
)

from sqlalchemy import Row, Table, delete, insert, select, text, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncTransaction

from fastuow.bulk import BulkLoader, default_loaders, find_loader
from fastuow.core import (
    AbstractUnitOfWork,
    Auditable,
    ConcurrentUseError,
    CurrentUserContext,
    DisposalRollbackError,
    Params,
    StoreConnectionError,
    TableNaming,
    TransactionCompletedError,
    UnitOfWorkClosedError,
    UnsupportedCapabilityError,
    UowError,
)
from fastuow.logging import get_logger
from fastuow.schema import EntityDescriptor, IdKind, describe, type_name
from fastuow.user import resolve_actor

E = TypeVar("E")

Clock = Callable[[], datetime]
RowMapper = Callable[[Row], Any]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


logger = get_logger("fastuow.uow")


class SqlAlchemyUnitOfWork(AbstractUnitOfWork):
    """``SqlAlchemy`` 비동기 커넥션을 이용한 UnitOfWork 패턴 구현입니다.

    Example: ::

        async with factory.create_unit_of_work() as uow:
            await uow.insert(product)
            await uow.commit()

    Args:
        connection: 아직 열리지 않은 :class:`AsyncConnection` (``engine.connect()``).
        current_user: 감사 필드에 기록할 사용자 정보.
        transactional: ``False`` 면 트랜잭션 없이 자동 커밋 모드로 동작합니다.
        naming: 엔티티 타입 → 테이블 이름 네이밍 전략.
        bulk_loaders: :meth:`bulk_insert` 에 사용할 벌크 로더 후보 목록.
        clock: 감사 타임스탬프용 시계 (UTC).
    """

    # pylint: disable=super-init-not-called
    def __init__(
        self,
        connection: AsyncConnection,
        current_user: CurrentUserContext,
        transactional: bool = True,
        *,
        naming: TableNaming = type_name,
        bulk_loaders: Optional[Iterable[BulkLoader]] = None,
        clock: Clock = utcnow,
    ) -> None:
        self.connection = connection
        self.current_user = current_user
        self.transactional = transactional
        self.naming = naming
        self.bulk_loaders = (
            list(bulk_loaders) if bulk_loaders is not None else default_loaders()
        )
        self.clock = clock

        self.transaction: Optional[AsyncTransaction] = None
        self.completed = False
        self.opened = False
        self.disposed = False
        self.disposal_error: Optional[DisposalRollbackError] = None
        self._running: Optional[str] = None

    def __repr__(self) -> str:
        return f"SqlAlchemyUnitOfWork[transactional={self.transactional}]"

    def __await__(self) -> Generator[Any, None, SqlAlchemyUnitOfWork]:
        """``uow = await factory.create_unit_of_work()`` 처럼 바로 열 수 있게 합니다."""
        return self.open().__await__()

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        return await self.open()

    @property
    def actor(self) -> str:
        return resolve_actor(self.current_user)

    async def open(self) -> SqlAlchemyUnitOfWork:
        """커넥션을 열고, 트랜잭션 모드라면 트랜잭션을 시작합니다.

        Raises:
            StoreConnectionError: 커넥션을 열 수 없는 경우.
        """
        if self.disposed:
            raise UnitOfWorkClosedError("이미 dispose 된 UoW 입니다.")
        if self.opened:
            return self

        try:
            await self.connection.start()
            if self.transactional:
                self.transaction = await self.connection.begin()
            else:
                await self.connection.execution_options(isolation_level="AUTOCOMMIT")
        except (SQLAlchemyError, OSError) as e:
            self.disposed = True
            await self._close_connection()
            raise StoreConnectionError(f"커넥션을 열 수 없습니다: {e}") from e

        self.opened = True
        # 트랜잭션이 없으면 처음부터 완료 상태입니다.
        self.completed = not self.transactional
        logger.debug("%r opened", self)
        return self

    @contextmanager
    def _operation(self, name: str) -> Generator[AsyncConnection, None, None]:
        """작업 하나가 커넥션을 독점하는 구간입니다.

        다른 작업이 진행중이면 기다리지 않고 :class:`ConcurrentUseError` 를 던집니다.
        """
        if not self.opened or self.disposed:
            raise UnitOfWorkClosedError(f"{name}: UoW 가 열려있지 않습니다.")
        if self.transactional and self.completed:
            raise TransactionCompletedError(
                f"{name}: 이미 커밋 또는 롤백된 트랜잭션입니다."
            )
        if self._running:
            raise ConcurrentUseError(
                f"{name}: '{self._running}' 작업이 진행중입니다."
                " 하나의 UoW 에서 작업을 동시에 실행할 수 없습니다."
            )

        self._running = name
        try:
            yield self.connection
        finally:
            self._running = None

    def _describe(self, entity_class: Type[E]) -> tuple[EntityDescriptor[E], Table]:
        descriptor = describe(entity_class)
        return descriptor, descriptor.table(self.naming(entity_class))

    async def insert(self, entity: Any) -> None:
        """엔티티를 저장합니다.

        :class:`Auditable` 엔티티는 호출자가 넣은 값과 관계없이 ``created``,
        ``created_by`` 가 현재 시각/사용자로 기록됩니다. 실패해도 자동으로 롤백되지
        않습니다.
        """
        descriptor, table = self._describe(type(entity))

        with self._operation("insert") as conn:
            if isinstance(entity, Auditable):
                entity.stamp_created(self.clock(), self.actor)
            descriptor.ensure_id(entity)

            values = descriptor.to_row(entity, descriptor.insert_columns(entity))
            result = await conn.execute(insert(table).values(values))

        if descriptor.id_kind is IdKind.STORE_ASSIGNED and descriptor.has_empty_id(
            entity
        ):
            setattr(entity, descriptor.require_id(), result.inserted_primary_key[0])

    async def update(self, entity: Any) -> bool:
        """엔티티를 식별자로 찾아 갱신합니다. ``created*`` 컬럼은 건드리지 않습니다.

        Returns:
            갱신된 행이 있는지 여부.
        """
        descriptor, table = self._describe(type(entity))
        id_field = descriptor.require_id()

        with self._operation("update") as conn:
            id_value = getattr(entity, id_field)
            if id_value is None:
                raise UowError(f"{entity!r}: 식별자 값이 없어 update 할 수 없습니다.")

            if isinstance(entity, Auditable):
                entity.stamp_modified(self.clock(), self.actor)

            values = descriptor.to_row(entity, descriptor.update_columns())
            result = await conn.execute(
                update(table).where(table.c[id_field] == id_value).values(values)
            )

        return result.rowcount > 0

    async def delete(self, entity: Any) -> bool:
        descriptor, table = self._describe(type(entity))
        id_field = descriptor.require_id()

        with self._operation("delete") as conn:
            id_value = getattr(entity, id_field)
            if id_value is None:
                raise UowError(f"{entity!r}: 식별자 값이 없어 delete 할 수 없습니다.")

            result = await conn.execute(
                delete(table).where(table.c[id_field] == id_value)
            )

        return result.rowcount > 0

    async def get(self, entity_class: Type[E], id: Any) -> Optional[E]:
        """식별자로 엔티티를 조회합니다. 못 찾을 경우 ``None`` 을 리턴합니다."""
        descriptor, table = self._describe(entity_class)
        id_field = descriptor.require_id()

        with self._operation("get") as conn:
            result = await conn.execute(select(table).where(table.c[id_field] == id))
            row = result.mappings().first()

        return descriptor.from_row(row) if row else None

    async def get_all(self, entity_class: Type[E]) -> list[E]:
        descriptor, table = self._describe(entity_class)

        with self._operation("get_all") as conn:
            result = await conn.execute(select(table))
            rows = result.mappings().all()

        return [descriptor.from_row(row) for row in rows]

    def _row_mapper(self, as_type: Optional[Callable]) -> RowMapper:
        """쿼리 결과 행을 ``as_type`` 으로 변환하는 함수를 만듭니다.

        - ``None``: 행(:class:`Row`)을 그대로 리턴합니다.
        - ``dataclass`` 엔티티 타입: 컬럼 기술자로 변환합니다.
        - 컬럼이 하나인 행: ``as_type(value)`` (예: ``int``, ``str``)
        - 그 외: ``as_type(**row)``
        """
        if as_type is None:
            return lambda row: row

        if isinstance(as_type, type) and dataclasses.is_dataclass(as_type):
            descriptor = describe(as_type)
            return lambda row: descriptor.from_row(row._mapping)

        def _map(row: Row) -> Any:
            if len(row) == 1:
                return as_type(row[0])
            return as_type(**row._mapping)

        return _map

    async def query(
        self, sql: str, params: Params = None, as_type: Optional[Callable] = None
    ) -> list[Any]:
        """임의의 SQL 을 이 UoW 의 트랜잭션 안에서 실행하고 모든 행을 리턴합니다.

        파라메터는 ``:name`` 형식으로 바인딩합니다.
        """
        mapper = self._row_mapper(as_type)
        with self._operation("query") as conn:
            result = await conn.execute(text(sql), params or {})
            rows = result.all()
        return [mapper(row) for row in rows]

    async def query_single(
        self, sql: str, params: Params = None, as_type: Optional[Callable] = None
    ) -> Any:
        """결과가 정확히 한 행이어야 합니다. 아니면 ``StoreError`` 가 발생합니다."""
        mapper = self._row_mapper(as_type)
        with self._operation("query_single") as conn:
            result = await conn.execute(text(sql), params or {})
            row = result.one()
        return mapper(row)

    async def query_first_or_default(
        self, sql: str, params: Params = None, as_type: Optional[Callable] = None
    ) -> Optional[Any]:
        mapper = self._row_mapper(as_type)
        with self._operation("query_first_or_default") as conn:
            result = await conn.execute(text(sql), params or {})
            row = result.first()
        return mapper(row) if row is not None else None

    async def execute(self, sql: str, params: Params = None) -> int:
        """SQL 을 실행하고 영향받은 행 수를 리턴합니다."""
        with self._operation("execute") as conn:
            result = await conn.execute(text(sql), params or {})
        return result.rowcount

    async def bulk_insert(
        self, items: Iterable[Any], table_name: Optional[str] = None
    ) -> int:
        """같은 타입의 엔티티들을 벌크 로드 프로토콜로 한번에 저장합니다.

        - 감사 시각과 사용자는 배치 전체에서 한번만 결정됩니다.
        - 비어있는 UUID 식별자는 새로 생성되며, DB 할당 식별자는 DB 가 채웁니다.
        - ``last_modified*`` 는 기록하지 않습니다 (insert 전용).

        중간에 실패하더라도 트랜잭션은 열려 있으며 최종 반영 여부는
        :meth:`commit`/:meth:`rollback` 이 결정합니다.

        Raises:
            UnsupportedCapabilityError: 커넥션이 벌크 로드를 지원하지 않는 경우.
                어떤 엔티티도 변경되거나 전송되기 전에 발생합니다.
        """
        with self._operation("bulk_insert") as conn:
            loader = find_loader(self.bulk_loaders, conn)
            if loader is None:
                raise UnsupportedCapabilityError(
                    f"'{conn.dialect.name}' 커넥션은 벌크 로드를 지원하지 않습니다."
                )

            items = list(items)
            if not items:
                return 0

            entity_class = type(items[0])
            if any(type(it) is not entity_class for it in items):
                raise UowError("bulk_insert 는 같은 타입의 엔티티만 받을 수 있습니다.")

            descriptor = describe(entity_class)
            table = descriptor.table(table_name or self.naming(entity_class))
            columns = descriptor.insert_columns()

            now, actor = self.clock(), self.actor
            rows: list[Sequence[Any]] = []
            for item in items:
                descriptor.ensure_id(item)
                if isinstance(item, Auditable):
                    item.stamp_created(now, actor)
                rows.append(descriptor.to_values(item, columns))

            count = await loader.load(conn, table, [c.name for c in columns], rows)

        logger.debug("%r: bulk inserted %d rows into %s", self, count, table.name)
        return count

    async def commit(self) -> None:
        """트랜잭션을 커밋합니다. 이미 완료된 경우 아무것도 하지 않습니다."""
        if self.completed:
            return

        with self._operation("commit"):
            if self.transaction:
                await self.transaction.commit()

        self.completed = True
        logger.debug("%r committed", self)

    async def rollback(self) -> None:
        """트랜잭션을 롤백합니다. 이미 완료된 경우 아무것도 하지 않습니다."""
        if self.completed:
            return

        with self._operation("rollback"):
            if self.transaction:
                await self.transaction.rollback()

        self.completed = True
        logger.debug("%r rolled back", self)

    async def dispose(self) -> None:
        """완료되지 않은 트랜잭션을 롤백하고, 트랜잭션과 커넥션을 반환합니다.

        어떤 경우에도 예외를 던지지 않습니다. 암묵적 롤백이 실패하면
        :attr:`disposal_error` 에 기록하고 경고 로그만 남깁니다. 이 경우 DB 에서
        트랜잭션의 최종 결과는 불확실할 수 있습니다.
        """
        if self.disposed:
            return
        self.disposed = True

        if self.opened and not self.completed and self.transaction:
            try:
                await self.transaction.rollback()
                logger.debug("%r rolled back on dispose", self)
            except Exception as e:  # pylint: disable=broad-except
                self.disposal_error = DisposalRollbackError(
                    f"dispose 중 롤백에 실패했습니다: {e}", e
                )
                logger.warning("%r: implicit rollback failed: %r", self, e)

        self.transaction = None
        await self._close_connection()
        logger.debug("%r disposed", self)

    async def _close_connection(self) -> None:
        if self.connection.sync_connection is None:
            return  # 열리지 않은 커넥션

        try:
            await self.connection.close()
        except Exception as e:  # pylint: disable=broad-except
            logger.warning("%r: failed to close connection: %r", self, e)
