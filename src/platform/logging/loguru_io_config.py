"""
Loguru sinks for the checkout service

Every record carries the service tag and the order id of the call chain that emitted
it, so one checkout can be followed from quote to issuance across use cases, gateway
polls and the issuer. Standard-library loggers (granian, httpx, SQLAlchemy) are routed
through the same sinks.
"""

from contextvars import ContextVar
from enum import StrEnum
import logging
import os
import re
import sys
from typing import TYPE_CHECKING

from loguru import logger as loguru_logger


if TYPE_CHECKING:
    from loguru import Record

from src.platform.config.core_setting import settings
from src.platform.constant.path import LOG_DIR
from src.platform.logging.service_context import get_service_context


LOG_DIR = os.environ.get('TEST_LOG_DIR', LOG_DIR)

# Argument names whose values never reach a log line
SENSITIVE_KEYWORDS = {
    'password',
    'secret_key',
    'card_number',
    'authorization',
}

# Visual marker for nested call depth
DEPTH_LINE = '│'

chain_start_time_var: ContextVar[float] = ContextVar('first_time_var', default=0)
call_depth_var: ContextVar[int] = ContextVar('call_depth_var', default=0)
# Order being processed by the current call chain ('-' outside checkout flows)
order_id_var: ContextVar[str] = ContextVar('order_id_var', default='-')


class ExtraField(StrEnum):
    SERVICE_CONTEXT = 'service_context'
    CHAIN_START_TIME = 'chain_start_time'
    CALL_TARGET = 'call_target'
    ORDER_ID = 'order_id'


# Chatty below WARNING: one line per gateway poll, per pooled connection, per loop start
QUIET_LOGGERS = ('httpx', 'httpcore', 'asyncio', 'sqlalchemy.engine')

# granian access line: '127.0.0.1 - "POST /api/checkout HTTP/1.1" - 200 - 8ms'
_ACCESS_STATUS = re.compile(r'" - (\d{3}) - ')


def access_log_level(message: str) -> str | None:
    """5xx as ERROR, 4xx (sold out, unknown tier, bad buyer) as WARNING, the rest INFO"""
    if not (match := _ACCESS_STATUS.search(message)):
        return None
    status_code = int(match.group(1))
    if status_code >= 500:
        return 'ERROR'
    if status_code >= 400:
        return 'WARNING'
    return 'INFO'


def _attach_order_id(record: 'Record') -> None:
    record['extra'][ExtraField.ORDER_ID] = order_id_var.get()


loguru_logger.remove()
custom_logger = loguru_logger.patch(_attach_order_id).bind(
    **{
        ExtraField.SERVICE_CONTEXT: get_service_context(),
        ExtraField.CHAIN_START_TIME: '',
        ExtraField.CALL_TARGET: '',
    }
)


class InterceptHandler(logging.Handler):
    def emit(self, record: logging.LogRecord) -> None:
        message = record.getMessage()
        level: str | int | None = None
        if record.name.startswith('granian.access'):
            level = access_log_level(message)
        if level is None:
            try:
                level = loguru_logger.level(record.levelname).name
            except ValueError:
                level = record.levelno

        # Report the caller, not the logging module
        frame, depth = logging.currentframe(), 2
        while frame and frame.f_code.co_filename == logging.__file__:
            frame = frame.f_back  # type: ignore
            depth += 1

        custom_logger.opt(depth=depth, exception=record.exc_info).log(level, message)


io_log_format = ' | '.join(
    (
        f'<c>{{extra[{ExtraField.SERVICE_CONTEXT}]}}</>',
        '<lvl>{level:<8}</>',
        f'<m>order={{extra[{ExtraField.ORDER_ID}]}}</>',
        f'<c>{{file}}::{{function}}:{{line}}</>=><y>{{extra[{ExtraField.CALL_TARGET}]}}</>',
        '{message}',
        '<lk>{elapsed}</>',
        f'<lk>{{extra[{ExtraField.CHAIN_START_TIME}]:<18}}</>',
    )
)

min_log_level = 'DEBUG' if settings.DEBUG else 'INFO'

custom_logger.add(sys.stdout, format=io_log_format, level=min_log_level, enqueue=True)

# Hourly files for local debugging; deployments read stdout
if settings.DEBUG:
    prefix = 'test_' if os.environ.get('TEST_LOG_DIR') else ''
    custom_logger.add(
        f'{LOG_DIR}/{prefix}{{time:YYYY-MM-DD_HH}}.log',
        format=io_log_format,
        rotation='1 hour',
        retention='7 days',
        compression='gz',
        enqueue=True,
        level=min_log_level,
    )

logging.basicConfig(handlers=[InterceptHandler()], level=0, force=True)
for name in QUIET_LOGGERS:
    logging.getLogger(name).setLevel(logging.WARNING)
