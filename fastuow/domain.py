"""영속화 대상 엔티티의 기본 모델."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import ClassVar, Generic, Optional, TypeVar

from fastuow.core import Auditable

ID = TypeVar("ID")


@dataclass
class AuditableEntity(Auditable):
    """생성/수정 이력(provenance) 메타데이터를 가지는 엔티티입니다.

    ``created``, ``created_by`` 는 최초 insert 시점에 한번만 기록되며 이후 update
    구문에서 제외됩니다. ``last_modified``, ``last_modified_by`` 는 첫 update
    전까지 비어 있습니다.
    """

    created: Optional[datetime] = field(
        default=None, metadata={"nullable": False, "insert_only": True}
    )
    created_by: Optional[str] = field(
        default=None, metadata={"nullable": False, "insert_only": True}
    )
    last_modified: Optional[datetime] = None
    last_modified_by: Optional[str] = None

    def stamp_created(self, at: datetime, by: str) -> None:
        self.created = at
        self.created_by = by
        # 새로 insert 되는 레코드는 수정 이력이 없습니다.
        self.last_modified = None
        self.last_modified_by = None

    def stamp_modified(self, at: datetime, by: str) -> None:
        self.last_modified = at
        self.last_modified_by = by


@dataclass
class IdentifiedEntity(AuditableEntity, Generic[ID]):
    """PK 필드 ``id`` 를 가지는 :class:`AuditableEntity` 입니다.

    ``ID`` 타입에 따라 식별자 생성 방식이 결정됩니다.

    - ``uuid.UUID``: 비어있으면(``None`` 또는 nil UUID) 저장 전에 새로 생성합니다.
    - ``int``: DB 가 할당합니다 (auto increment).

    Example: ::

        @dataclass
        class Product(IdentifiedEntity[uuid.UUID]):
            name: str = ""
    """

    __id_field__: ClassVar[str] = "id"

    id: Optional[ID] = None  # pylint: disable=invalid-name
