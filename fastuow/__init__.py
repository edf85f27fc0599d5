"""FastUoW - 비동기 SqlAlchemy 기반 트랜잭션 Unit of Work."""
from fastuow.bulk import BulkLoader, InsertManyValuesLoader  # noqa
from fastuow.config import FastUoW  # noqa
from fastuow.core import (  # noqa
    AbstractUnitOfWork,
    Auditable,
    ConcurrentUseError,
    CurrentUserContext,
    DisposalRollbackError,
    SchemaError,
    StoreConnectionError,
    StoreError,
    TransactionCompletedError,
    UnitOfWorkClosedError,
    UnsupportedCapabilityError,
    UowError,
)
from fastuow.domain import AuditableEntity, IdentifiedEntity  # noqa
from fastuow.factory import UnitOfWorkFactory  # noqa
from fastuow.schema import IdKind, describe, snake_case, type_name  # noqa
from fastuow.uow import SqlAlchemyUnitOfWork  # noqa
from fastuow.user import (  # noqa
    SYSTEM_USER,
    ContextVarUserContext,
    StaticUserContext,
)
