from .errors import (  # noqa
    ConcurrentUseError,
    DisposalRollbackError,
    SchemaError,
    StoreConnectionError,
    StoreError,
    TransactionCompletedError,
    UnitOfWorkClosedError,
    UnsupportedCapabilityError,
    UowError,
)
from .models import (  # noqa
    AbstractUnitOfWork,
    Auditable,
    CurrentUserContext,
    Params,
    TableNaming,
)
