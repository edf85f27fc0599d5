import asyncio

import pytest

from fastuow import SYSTEM_USER, ContextVarUserContext, CurrentUserContext, StaticUserContext
from fastuow.test.unit import FakeUserContext
from fastuow.user import resolve_actor


def test_user_contexts_satisfy_protocol():
    assert isinstance(StaticUserContext(), CurrentUserContext)
    assert isinstance(ContextVarUserContext(), CurrentUserContext)
    assert isinstance(FakeUserContext(), CurrentUserContext)


def test_resolve_actor_falls_back_to_system():
    assert resolve_actor(StaticUserContext("batch")) == "batch"
    assert resolve_actor(StaticUserContext(None)) == SYSTEM_USER
    assert resolve_actor(FakeUserContext("")) == SYSTEM_USER
    assert resolve_actor(None) == SYSTEM_USER


def test_context_var_binding_is_scoped():
    users = ContextVarUserContext()
    assert users.user_id is None

    with users.bind("alice"):
        assert users.user_id == "alice"
        with users.bind("bob"):
            assert users.user_id == "bob"
        assert users.user_id == "alice"

    assert users.user_id is None


@pytest.mark.asyncio
async def test_context_var_binding_is_isolated_per_task():
    users = ContextVarUserContext()

    async def work(name: str) -> str:
        with users.bind(name):
            await asyncio.sleep(0)
            return resolve_actor(users)

    assert await asyncio.gather(work("alice"), work("bob")) == ["alice", "bob"]
