"""현재 사용자(actor) 정보를 제공하는 :class:`CurrentUserContext` 구현 모음."""
from __future__ import annotations

import contextvars
from contextlib import contextmanager
from typing import Generator, Optional

from fastuow.core import CurrentUserContext

SYSTEM_USER = "system"
"""사용자 정보가 없을 때 감사 필드에 기록되는 actor."""

USER_ID_VAR = contextvars.ContextVar[Optional[str]]("fastuow_user_id", default=None)


class StaticUserContext:
    """항상 같은 사용자를 리턴합니다. 배치 작업이나 서비스 계정에 사용합니다."""

    def __init__(self, user_id: Optional[str] = SYSTEM_USER):
        self._user_id = user_id

    def __repr__(self) -> str:
        return f"StaticUserContext[{self._user_id}]"

    @property
    def user_id(self) -> Optional[str]:
        return self._user_id


class ContextVarUserContext:
    """``contextvars`` 에 바인딩된 요청/태스크 단위의 사용자를 리턴합니다.

    Example: ::

        users = ContextVarUserContext()
        with users.bind("alice"):
            async with factory.create_unit_of_work() as uow:
                await uow.insert(item)  # created_by == "alice"
    """

    def __init__(self, var: contextvars.ContextVar[Optional[str]] = USER_ID_VAR):
        self.var = var

    @property
    def user_id(self) -> Optional[str]:
        return self.var.get()

    @contextmanager
    def bind(self, user_id: Optional[str]) -> Generator[None, None, None]:
        """블록 안에서만 ``user_id`` 를 현재 사용자로 지정합니다."""
        token = self.var.set(user_id)
        try:
            yield
        finally:
            self.var.reset(token)


def resolve_actor(context: Optional[CurrentUserContext]) -> str:
    """감사 필드에 기록할 actor 를 결정합니다. 정보가 없으면 :data:`SYSTEM_USER`."""
    user_id = getattr(context, "user_id", None)
    return user_id or SYSTEM_USER
