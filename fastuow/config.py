"""기본 환경 설정."""

from __future__ import annotations

import os
from configparser import ConfigParser
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Type

from sqlalchemy.pool import Pool, StaticPool

from fastuow.core import TableNaming, UowError
from fastuow.orm import is_memory_sqlite
from fastuow.schema import NAMING_STRATEGIES

CONFIG_SECTION = "fastuow"


@dataclass
class FastUoWSetupConfig:
    db_url: Optional[str] = None
    echo: Optional[str] = None
    table_naming: Optional[str] = None


def load_setupcfg(path: Path) -> Optional[FastUoWSetupConfig]:
    if (path / "setup.cfg").exists():
        # 현재 경로에 "setup.cfg" 파일이 있다면 [fastuow] 섹션에서
        # db_url, table_naming 등의 정보를 읽습니다.
        config = ConfigParser()
        config.read(path / "setup.cfg")
        if CONFIG_SECTION in config:
            return FastUoWSetupConfig(**config[CONFIG_SECTION])
    return None


@dataclass
class FastUoW:
    """FastUoW 설정.

    필요한 항목만 상속해서 바꿀 수 있습니다. ::

        class Config(FastUoW):
            def get_db_url(self) -> str:
                return "postgresql+asyncpg://app:secret@db/app"
    """

    db_url: Optional[str] = None
    """명시적인 DB URL. 없으면 환경변수를 참고합니다."""
    echo: bool = False
    """SQL 로그 출력 여부."""
    table_naming: str = "type_name"
    """테이블 네이밍 전략 이름 (``type_name``, ``snake_case``)."""

    @staticmethod
    def load_from_config(path: Path = Path(".")) -> FastUoW:
        """``setup.cfg`` 의 ``[fastuow]`` 섹션을 읽어 설정을 만듭니다."""
        cfg = load_setupcfg(path)
        if not cfg:
            return FastUoW()

        kwargs: dict[str, Any] = {}
        if cfg.db_url:
            kwargs["db_url"] = cfg.db_url
        if cfg.echo:
            kwargs["echo"] = cfg.echo.strip().lower() in ("1", "true", "yes", "on")
        if cfg.table_naming:
            kwargs["table_naming"] = cfg.table_naming.strip()

        return FastUoW(**kwargs)

    def get_db_url(self) -> str:
        """SqlAlchemy 에서 사용 가능한 형식의 비동기 DB URL을 리턴합니다.

        우선순위는 다음과 같습니다.

        1. ``db_url`` 설정값
        2. ``DB_URL`` 환경변수
        3. ``DB_HOST`` 환경변수가 있으면 ``DB_USER``, ``DB_PASS``, ``DB_NAME`` 과 조합한
           PostgreSQL URL
        4. 인메모리 SQLite
        """
        if self.db_url:
            return self.db_url

        if os.environ.get("DB_URL"):
            return os.environ["DB_URL"]

        if os.environ.get("DB_HOST"):
            db_host = os.environ["DB_HOST"]
            db_user = os.environ.get("DB_USER", "postgres")
            db_pass = os.environ.get("DB_PASS", "password")
            db_name = os.environ.get("DB_NAME", db_user)
            return f"postgresql+asyncpg://{db_user}:{db_pass}@{db_host}/{db_name}"

        return "sqlite+aiosqlite://"

    def get_db_connect_args(self) -> dict[str, Any]:
        """Get db connection arguments for SQLAlchemy's engine creation.

        Example:
            For SQLite dbs, it could be: ::

                {'check_same_thread': False}
        """
        return {}

    def get_db_poolclass(self) -> Optional[Type[Pool]]:
        """Get db poolclass argument for SQLAlchemy's engine creation.

        인메모리 SQLite 는 모든 커넥션이 같은 DB 를 보도록 :class:`StaticPool` 을,
        그 외에는 드라이버 기본 풀을 사용합니다.
        """
        if is_memory_sqlite(self.get_db_url()):
            return StaticPool
        return None

    def get_engine_options(self) -> dict[str, Any]:
        """:func:`fastuow.orm.init_engine` 에 전달할 옵션."""
        return dict(
            connect_args=self.get_db_connect_args(),
            poolclass=self.get_db_poolclass(),
            show_log=self.echo,
        )

    def get_table_naming(self) -> TableNaming:
        if self.table_naming not in NAMING_STRATEGIES:
            raise UowError(f"알 수 없는 테이블 네이밍 전략입니다: {self.table_naming}")
        return NAMING_STRATEGIES[self.table_naming]
