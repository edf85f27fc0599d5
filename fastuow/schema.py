"""엔티티 타입을 테이블 컬럼으로 기술(describe)하는 모듈입니다.

엔티티 타입마다 한번만 :class:`EntityDescriptor` 를 만들어 캐시하며, CRUD 와
벌크 insert 는 매 호출마다 리플렉션을 반복하지 않고 이 기술자를 사용합니다.
"""
from __future__ import annotations

import dataclasses
import enum
import re
import types
import uuid
from dataclasses import dataclass, field
from datetime import date, datetime, timezone
from decimal import Decimal
from functools import lru_cache
from typing import (
    Any,
    Generic,
    Mapping,
    Optional,
    Sequence,
    Type,
    TypeVar,
    Union,
    get_args,
    get_origin,
    get_type_hints,
)

from sqlalchemy import (
    Boolean,
    Column,
    Date,
    DateTime,
    Float,
    Integer,
    LargeBinary,
    MetaData,
    Numeric,
    String,
    Table,
    Uuid,
)
from sqlalchemy.types import TypeEngine

from fastuow.core import SchemaError
from fastuow.domain import IdentifiedEntity

E = TypeVar("E")

NIL_UUID = uuid.UUID(int=0)

COLUMN_TYPES: dict[type, Type[TypeEngine]] = {
    str: String,
    int: Integer,
    float: Float,
    bool: Boolean,
    Decimal: Numeric,
    datetime: DateTime,  # 오프셋 없는 DB 네이티브 타임스탬프
    date: Date,
    uuid.UUID: Uuid,
    bytes: LargeBinary,
}
"""지원하는 필드 타입과 SqlAlchemy 컬럼 타입 매핑."""

_UNION_TYPES = {Union, getattr(types, "UnionType", Union)}


class IdKind(enum.Enum):
    """식별자 값을 누가 만드는지 나타냅니다."""

    GENERATED = "generated"
    """비어있으면 저장 전에 UoW 가 랜덤 UUID 를 생성합니다."""
    STORE_ASSIGNED = "store_assigned"
    """DB 가 할당합니다 (auto increment)."""
    ASSIGNED = "assigned"
    """호출자가 직접 지정합니다."""


@dataclass(frozen=True)
class ColumnSpec:
    """컬럼 하나의 이름, 의미 타입, nullable 여부."""

    name: str
    python_type: type
    nullable: bool
    insert_only: bool = False
    primary_key: bool = False
    autoincrement: bool = False

    @property
    def is_timestamp(self) -> bool:
        return self.python_type is datetime

    def to_store(self, value: Any) -> Any:
        """오프셋이 있는 타임스탬프를 UTC 기준 naive 타임스탬프로 바꿉니다."""
        if self.is_timestamp and isinstance(value, datetime) and value.tzinfo:
            return value.astimezone(timezone.utc).replace(tzinfo=None)
        return value

    def from_store(self, value: Any) -> Any:
        """저장소 값을 필드 타입으로 변환합니다.

        타입 정보 없이 실행된 raw SQL 결과(문자열 UUID, 문자열 타임스탬프 등)도
        처리하며, naive 타임스탬프는 UTC 로 간주합니다.
        """
        if value is None or isinstance(value, self.python_type) and not self.is_timestamp:
            return value

        if self.is_timestamp:
            if isinstance(value, str):
                value = datetime.fromisoformat(value)
            if not value.tzinfo:
                value = value.replace(tzinfo=timezone.utc)
            return value

        if self.python_type is uuid.UUID:
            return uuid.UUID(str(value))
        if self.python_type is date and isinstance(value, str):
            return date.fromisoformat(value)
        if self.python_type is Decimal:
            return Decimal(str(value))
        if self.python_type is bool:
            return bool(value)
        return value

    def to_column(self) -> Column:
        return Column(
            self.name,
            COLUMN_TYPES[self.python_type](),
            primary_key=self.primary_key,
            nullable=self.nullable and not self.primary_key,
            autoincrement=self.autoincrement,
        )


@dataclass(frozen=True)
class EntityDescriptor(Generic[E]):
    """엔티티 타입의 정적인 컬럼 기술자입니다.

    :func:`describe` 로 타입마다 한번 만들어집니다.
    """

    entity_class: Type[E]
    columns: tuple[ColumnSpec, ...]
    id_field: Optional[str] = None
    id_kind: Optional[IdKind] = None
    _tables: dict[str, Table] = field(
        default_factory=dict, compare=False, repr=False, hash=False
    )

    def __repr__(self) -> str:
        return f"EntityDescriptor[{self.entity_class.__name__}]"

    @property
    def column_names(self) -> list[str]:
        return [c.name for c in self.columns]

    def require_id(self) -> str:
        """식별자 필드 이름을 리턴합니다. 없으면 :class:`SchemaError`."""
        if not self.id_field:
            raise SchemaError(
                f"{self.entity_class.__name__} 에 식별자 필드가 선언되지 않았습니다."
            )
        return self.id_field

    def identity(self, entity: E) -> Any:
        return getattr(entity, self.require_id())

    def has_empty_id(self, entity: E) -> bool:
        value = getattr(entity, self.id_field) if self.id_field else None
        return value is None or value == NIL_UUID

    def ensure_id(self, entity: E) -> bool:
        """``GENERATED`` 식별자가 비어있으면 새 UUID 를 할당합니다.

        Returns:
            새 식별자를 할당했는지 여부.
        """
        if self.id_kind is not IdKind.GENERATED or not self.has_empty_id(entity):
            return False

        setattr(entity, self.require_id(), uuid.uuid4())
        return True

    def insert_columns(self, entity: Optional[E] = None) -> tuple[ColumnSpec, ...]:
        """insert 에 사용할 컬럼 목록.

        DB 가 할당하는 식별자는 값이 비어있는 동안(벌크 insert 에서는 항상) 제외합니다.
        """
        if self.id_kind is not IdKind.STORE_ASSIGNED:
            return self.columns
        if entity is not None and not self.has_empty_id(entity):
            return self.columns
        return tuple(c for c in self.columns if c.name != self.id_field)

    def update_columns(self) -> tuple[ColumnSpec, ...]:
        return tuple(
            c for c in self.columns if not c.primary_key and not c.insert_only
        )

    def to_values(self, entity: E, columns: Sequence[ColumnSpec]) -> list[Any]:
        """컬럼 순서대로 저장소 표현의 값 리스트를 만듭니다."""
        return [c.to_store(getattr(entity, c.name)) for c in columns]

    def to_row(self, entity: E, columns: Sequence[ColumnSpec]) -> dict[str, Any]:
        return {c.name: c.to_store(getattr(entity, c.name)) for c in columns}

    def from_row(self, row: Mapping[str, Any]) -> E:
        """조회된 행을 엔티티 객체로 변환합니다."""
        values = {c.name: c.from_store(row[c.name]) for c in self.columns if c.name in row}
        return self.entity_class(**values)  # type: ignore

    def table(self, name: str) -> Table:
        """``name`` 테이블에 매핑되는 SqlAlchemy :class:`Table` 을 리턴합니다."""
        table = self._tables.get(name)
        if table is None:
            table = Table(name, MetaData(), *(c.to_column() for c in self.columns))
            self._tables[name] = table
        return table


def _unwrap_optional(hint: Any) -> tuple[Any, bool]:
    if get_origin(hint) in _UNION_TYPES:
        args = [arg for arg in get_args(hint) if arg is not type(None)]
        if len(args) != 1:
            raise SchemaError(f"지원하지 않는 Union 타입입니다: {hint!r}")
        return args[0], True
    return hint, False


def _resolve_id_type(entity_class: type, hint: Any) -> Any:
    """``IdentifiedEntity[ID]`` 의 제네릭 인자로부터 식별자 타입을 찾습니다."""
    if not isinstance(hint, TypeVar):
        return hint

    for klass in entity_class.__mro__:
        for base in klass.__dict__.get("__orig_bases__", ()):
            if get_origin(base) is IdentifiedEntity:
                (arg,) = get_args(base)
                if not isinstance(arg, TypeVar):
                    return arg

    raise SchemaError(f"{entity_class.__name__} 의 식별자 타입을 결정할 수 없습니다.")


def _id_kind_of(entity_class: type, id_type: Any) -> IdKind:
    explicit = getattr(entity_class, "__id_kind__", None)
    if explicit is not None:
        return IdKind(explicit)
    if id_type is uuid.UUID:
        return IdKind.GENERATED
    if id_type is int:
        return IdKind.STORE_ASSIGNED
    return IdKind.ASSIGNED


@lru_cache(maxsize=None)
def describe(entity_class: Type[E]) -> EntityDescriptor[E]:
    """엔티티 타입의 :class:`EntityDescriptor` 를 만듭니다. (타입당 한번만 계산)

    엔티티는 ``dataclass`` 여야 하며 식별자 필드는 ``__id_field__`` 클래스 속성으로
    선언합니다. 컬럼 이름은 필드 이름과 같고, 식별자 컬럼이 맨 앞에 옵니다.
    """
    if not dataclasses.is_dataclass(entity_class):
        raise SchemaError(f"{entity_class!r} 는 dataclass 가 아닙니다.")

    hints = get_type_hints(entity_class)
    id_field: Optional[str] = getattr(entity_class, "__id_field__", None)
    id_kind: Optional[IdKind] = None
    columns: list[ColumnSpec] = []

    for f in dataclasses.fields(entity_class):
        if not f.init:
            continue

        python_type, nullable = _unwrap_optional(hints[f.name])
        is_id = f.name == id_field

        if is_id:
            python_type = _resolve_id_type(entity_class, python_type)
            id_kind = _id_kind_of(entity_class, python_type)

        if python_type not in COLUMN_TYPES:
            raise SchemaError(
                f"{entity_class.__name__}.{f.name}: 지원하지 않는 타입입니다 ({python_type!r})"
            )

        spec = ColumnSpec(
            name=f.name,
            python_type=python_type,
            nullable=f.metadata.get("nullable", nullable),
            insert_only=f.metadata.get("insert_only", False),
            primary_key=is_id,
            autoincrement=is_id and id_kind is IdKind.STORE_ASSIGNED,
        )
        if is_id:
            columns.insert(0, spec)
        else:
            columns.append(spec)

    if id_field and id_kind is None:
        raise SchemaError(f"{entity_class.__name__} 에 {id_field} 필드가 없습니다.")

    return EntityDescriptor(entity_class, tuple(columns), id_field, id_kind)


def type_name(entity_class: type) -> str:
    """기본 네이밍 전략: 테이블 이름 == 타입 이름."""
    return entity_class.__name__


def snake_case(entity_class: type) -> str:
    """``OrderLine`` -> ``order_line``."""
    return re.sub(r"(?<!^)(?=[A-Z])", "_", entity_class.__name__).lower()


NAMING_STRATEGIES = {
    "type_name": type_name,
    "snake_case": snake_case,
}
