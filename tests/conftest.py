# pylint: disable=redefined-outer-name, protected-access
"""pytest 에서 사용될 전역 Fixture들을 정의합니다."""
from __future__ import annotations

from pathlib import Path
from typing import AsyncGenerator, Awaitable, Callable

import pytest
import pytest_asyncio

from fastuow.factory import UnitOfWorkFactory
from fastuow.orm import create_tables
from fastuow.test.unit import FakeUserContext
from tests.app.domain.models import ENTITIES

# types

MakeFactory = Callable[..., Awaitable[UnitOfWorkFactory]]
""":func:`make_factory` 픽스처 타입."""


@pytest.fixture
def user() -> FakeUserContext:
    """모든 UoW 가 공유하는 현재 사용자 픽스처."""
    return FakeUserContext("tester")


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    """테스트마다 새로 만들어지는 파일 기반 SQLite DB URL 입니다.

    커넥션마다 독립된 트랜잭션을 가지도록 인메모리 DB 대신 파일을 사용합니다.
    """
    return f"sqlite+aiosqlite:///{tmp_path / 'fastuow.db'}"


@pytest_asyncio.fixture
async def make_factory(
    db_url: str, user: FakeUserContext
) -> AsyncGenerator[MakeFactory, None]:
    """옵션을 바꿔가며 :class:`UnitOfWorkFactory` 를 만드는 픽스처입니다.

    같은 DB 를 공유하며, 테스트가 끝나면 만든 팩토리를 모두 정리합니다.
    """
    factories: list[UnitOfWorkFactory] = []

    async def wrapper(**kwargs) -> UnitOfWorkFactory:
        kwargs.setdefault("current_user", user)
        factory = UnitOfWorkFactory(db_url, **kwargs)
        if not factories:
            await create_tables(factory.engine, ENTITIES)
        factories.append(factory)
        return factory

    yield wrapper

    for factory in factories:
        await factory.dispose()


@pytest_asyncio.fixture
async def factory(make_factory: MakeFactory) -> UnitOfWorkFactory:
    """기본 옵션의 :class:`UnitOfWorkFactory` 픽스처입니다."""
    return await make_factory()
