"""SqlAlchemy 엔진 및 테이블 초기화 모듈.

스키마 마이그레이션 도구가 아니라 개발/테스트 환경에서 엔티티 기술자에 맞는
테이블을 만들어주는 헬퍼입니다.
"""
from __future__ import annotations

from typing import Any, Iterable, Optional, Type, Union

from sqlalchemy import MetaData
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, create_async_engine
from sqlalchemy.pool import Pool, StaticPool

from fastuow.core import TableNaming
from fastuow.logging import get_logger
from fastuow.schema import describe, type_name

logger = get_logger("fastuow.orm")


def is_memory_sqlite(url: str) -> bool:
    """인메모리 SQLite URL 여부. 모든 커넥션이 하나의 DB 를 공유하려면 StaticPool 이 필요합니다."""
    parsed = make_url(url)
    return parsed.get_backend_name() == "sqlite" and parsed.database in (
        None,
        "",
        ":memory:",
    )


def init_engine(
    url: str,
    connect_args: Optional[dict[str, Any]] = None,
    poolclass: Optional[Type[Pool]] = None,
    show_log: bool = False,
    **options: Any,
) -> AsyncEngine:
    """비동기 ORM Engine을 초기화 합니다.

    커넥션 풀링은 엔진(SqlAlchemy)의 책임입니다. ``poolclass`` 를 주지 않으면
    인메모리 SQLite 에는 :class:`StaticPool` 을, 그 외에는 드라이버 기본 풀을 씁니다.
    """
    if poolclass is None and is_memory_sqlite(url):
        poolclass = StaticPool

    if poolclass is not None:
        options["poolclass"] = poolclass

    engine = create_async_engine(
        url,
        connect_args=connect_args or {},
        echo=show_log,
        **options,
    )
    logger.debug("engine created: %s", engine.url.render_as_string(hide_password=True))
    return engine


def build_metadata(
    entity_classes: Iterable[type], naming: TableNaming = type_name
) -> MetaData:
    """엔티티 기술자로부터 테이블 정의를 담은 :class:`MetaData` 를 만듭니다."""
    metadata = MetaData()
    for entity_class in entity_classes:
        describe(entity_class).table(naming(entity_class)).to_metadata(metadata)
    return metadata


async def create_tables(
    bind: Union[AsyncEngine, AsyncConnection],
    entity_classes: Iterable[type],
    naming: TableNaming = type_name,
    drop_all: bool = False,
) -> MetaData:
    """엔티티 타입들에 해당하는 테이블을 생성합니다.

    Example: ::

        await create_tables(factory.engine, [Product, Order])
    """
    metadata = build_metadata(entity_classes, naming)

    async def _run(conn: AsyncConnection) -> None:
        if drop_all:
            await conn.run_sync(metadata.drop_all)
        await conn.run_sync(metadata.create_all)

    if isinstance(bind, AsyncEngine):
        async with bind.begin() as conn:
            await _run(conn)
    else:
        await _run(bind)

    logger.debug("tables created: %s", ", ".join(metadata.tables))
    return metadata


async def drop_tables(
    bind: AsyncEngine, entity_classes: Iterable[type], naming: TableNaming = type_name
) -> None:
    """엔티티 타입들에 해당하는 테이블을 삭제합니다."""
    metadata = build_metadata(entity_classes, naming)
    async with bind.begin() as conn:
        await conn.run_sync(metadata.drop_all)
