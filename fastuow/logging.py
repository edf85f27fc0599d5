"""FastUoW 로거 설정."""
import logging
import os
from typing import Optional

from uvicorn.logging import DefaultFormatter

LOG_FORMAT = "%(levelprefix)s %(name)s: %(message)s"
LOG_LEVEL_ENV = "FASTUOW_LOG_LEVEL"


def get_log_level(default: int = logging.INFO) -> int:
    """``FASTUOW_LOG_LEVEL`` 환경변수(예: ``DEBUG``)로 지정된 레벨을 리턴합니다."""
    name = os.environ.get(LOG_LEVEL_ENV)
    if not name:
        return default

    level = logging.getLevelName(name.upper())
    return level if isinstance(level, int) else default


def get_logger(name: str, log_level: Optional[int] = None) -> logging.Logger:
    logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(log_level if log_level is not None else get_log_level())
        ch = logging.StreamHandler()
        ch.setFormatter(DefaultFormatter(fmt=LOG_FORMAT))
        logger.addHandler(ch)

    return logger
