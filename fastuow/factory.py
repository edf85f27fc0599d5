"""UnitOfWork 팩토리."""
from __future__ import annotations

from typing import TYPE_CHECKING, Any, Iterable, Optional, Union

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine

from fastuow.bulk import BulkLoader
from fastuow.core import CurrentUserContext, TableNaming
from fastuow.logging import get_logger
from fastuow.orm import init_engine
from fastuow.schema import type_name
from fastuow.uow import SqlAlchemyUnitOfWork

if TYPE_CHECKING:
    from fastuow.config import FastUoW

logger = get_logger("fastuow.factory")


class UnitOfWorkFactory:
    """호출마다 새 커넥션을 만들어 새 :class:`SqlAlchemyUnitOfWork` 로 감싸 리턴합니다.

    커넥션 풀링은 SqlAlchemy 엔진의 책임이며 팩토리에는 공유/풀링 로직이 없습니다.

    Args:
        db: SqlAlchemy 비동기 DB URL 또는 이미 만들어진 :class:`AsyncEngine`.
        current_user: 모든 UoW 가 공유하는 현재 사용자 정보.
        naming: 테이블 네이밍 전략.
        bulk_loaders: UoW 에 전달할 벌크 로더 목록. ``None`` 이면 기본 로더.
        engine_options: 엔진 생성 옵션 (``db`` 가 URL 일 때만 사용).
    """

    def __init__(
        self,
        db: Union[str, AsyncEngine],
        current_user: CurrentUserContext,
        *,
        naming: TableNaming = type_name,
        bulk_loaders: Optional[Iterable[BulkLoader]] = None,
        engine_options: Optional[dict[str, Any]] = None,
    ):
        self.current_user = current_user
        self.naming = naming
        self.bulk_loaders = list(bulk_loaders) if bulk_loaders is not None else None
        self.engine_options = engine_options or {}

        self._engine: Optional[AsyncEngine] = None
        self._owns_engine = not isinstance(db, AsyncEngine)
        if isinstance(db, AsyncEngine):
            self._engine = db
            self.db_url = db.url.render_as_string(hide_password=False)
        else:
            self.db_url = db

    def __repr__(self) -> str:
        return f"UnitOfWorkFactory[{make_url(self.db_url)!r}]"

    @classmethod
    def from_config(
        cls, config: FastUoW, current_user: CurrentUserContext
    ) -> UnitOfWorkFactory:
        """:class:`~fastuow.config.FastUoW` 설정으로 팩토리를 만듭니다."""
        return cls(
            config.get_db_url(),
            current_user,
            naming=config.get_table_naming(),
            engine_options=config.get_engine_options(),
        )

    @property
    def engine(self) -> AsyncEngine:
        """처음 사용할 때 엔진을 만듭니다."""
        if not self._engine:
            self._engine = init_engine(self.db_url, **self.engine_options)
        return self._engine

    def create_unit_of_work(self, transactional: bool = True) -> SqlAlchemyUnitOfWork:
        """새 커넥션 위에 새 UoW 를 만듭니다.

        리턴된 UoW 는 아직 열리지 않았습니다. ``async with`` 로 사용하거나
        ``await`` 해서 엽니다. ::

            async with factory.create_unit_of_work() as uow:
                ...
        """
        return SqlAlchemyUnitOfWork(
            self.engine.connect(),
            self.current_user,
            transactional,
            naming=self.naming,
            bulk_loaders=self.bulk_loaders,
        )

    async def dispose(self) -> None:
        """팩토리가 만든 엔진(커넥션 풀)을 정리합니다."""
        if self._engine and self._owns_engine:
            await self._engine.dispose()
            logger.debug("%r disposed", self)
            self._engine = None
