from __future__ import annotations

import abc
from contextlib import AbstractAsyncContextManager
from datetime import datetime
from typing import (
    Any,
    Callable,
    Iterable,
    Mapping,
    Optional,
    Protocol,
    Type,
    TypeVar,
    runtime_checkable,
)

E = TypeVar("E")
T = TypeVar("T")

TableNaming = Callable[[type], str]
"""엔티티 타입으로부터 테이블 이름을 결정하는 네이밍 전략 함수 타입."""

Params = Optional[Mapping[str, Any]]


@runtime_checkable
class CurrentUserContext(Protocol):
    """"지금 작업하는 사용자가 누구인가" 를 알려주는 조회 전용 인터페이스."""

    @property
    def user_id(self) -> Optional[str]:
        ...


class Auditable(abc.ABC):
    """감사(audit) 필드 스탬핑을 원하는 엔티티가 구현하는 인터페이스.

    UoW 는 ``isinstance(entity, Auditable)`` 인 엔티티에만 스탬프를 찍습니다.
    """

    @abc.abstractmethod
    def stamp_created(self, at: datetime, by: str) -> None:
        """최초 insert 시점의 생성 정보를 기록합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    def stamp_modified(self, at: datetime, by: str) -> None:
        """update 시점의 수정 정보를 기록합니다."""
        raise NotImplementedError


class AbstractUnitOfWork(AbstractAsyncContextManager["AbstractUnitOfWork"]):
    """UnitOfWork 패턴의 추상 인터페이스입니다.

    하나의 UoW 는 하나의 커넥션과 하나의 트랜잭션을 소유하며, 모든 작업은 같은
    트랜잭션 안에서 실행됩니다. ``async with`` 블록을 이용하면 어떤 경로로
    블록을 빠져나가더라도 :meth:`dispose` 가 호출됩니다.
    """

    completed: bool

    async def __aenter__(self) -> AbstractUnitOfWork:
        """``async with`` 블록에 진입했을때 커넥션을 열고 트랜잭션을 시작합니다."""
        return await self.open()

    async def __aexit__(self, *args: Any) -> None:
        """``async with`` 블록에서 빠져나갈 때 실행되는 메소드입니다."""
        await self.dispose()  # commit() 안되었을때 변경을 롤백합니다.
        # (이미 커밋 되었을 경우 rollback은 아무 효과도 없음)

    @abc.abstractmethod
    async def open(self) -> AbstractUnitOfWork:
        raise NotImplementedError

    @abc.abstractmethod
    async def insert(self, entity: Any) -> None:
        raise NotImplementedError

    @abc.abstractmethod
    async def update(self, entity: Any) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    async def delete(self, entity: Any) -> bool:
        raise NotImplementedError

    @abc.abstractmethod
    async def get(self, entity_class: Type[E], id: Any) -> Optional[E]:
        raise NotImplementedError

    @abc.abstractmethod
    async def get_all(self, entity_class: Type[E]) -> list[E]:
        raise NotImplementedError

    @abc.abstractmethod
    async def query(
        self, sql: str, params: Params = None, as_type: Optional[Callable] = None
    ) -> list[Any]:
        raise NotImplementedError

    @abc.abstractmethod
    async def query_single(
        self, sql: str, params: Params = None, as_type: Optional[Callable] = None
    ) -> Any:
        raise NotImplementedError

    @abc.abstractmethod
    async def query_first_or_default(
        self, sql: str, params: Params = None, as_type: Optional[Callable] = None
    ) -> Optional[Any]:
        raise NotImplementedError

    @abc.abstractmethod
    async def execute(self, sql: str, params: Params = None) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    async def bulk_insert(
        self, items: Iterable[Any], table_name: Optional[str] = None
    ) -> int:
        raise NotImplementedError

    @abc.abstractmethod
    async def commit(self) -> None:
        """트랜잭션을 커밋합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    async def rollback(self) -> None:
        """트랜잭션을 롤백합니다."""
        raise NotImplementedError

    @abc.abstractmethod
    async def dispose(self) -> None:
        """트랜잭션과 커넥션을 반환합니다. 절대 예외를 던지지 않습니다."""
        raise NotImplementedError
