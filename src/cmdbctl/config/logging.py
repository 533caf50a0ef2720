"""structlog setup for cmdbctl.

All log output goes to stderr so ``--json`` results on stdout stay
parseable. Two renderers:

- console (default), colored when stderr is a terminal
- JSON lines (``--log-json``), one object per record

Stdlib ``logging`` records from library code pass through the same
processor chain. Every record also carries the invoked command and the
acting user once they are known (see :func:`bind_log_context`).
"""

from __future__ import annotations

import logging
import sys

import structlog

# Third-party loggers that stay at WARNING even under --verbose.
QUIET_LOGGERS = ("alembic", "sqlalchemy.engine")


def configure_logging(*, verbose: bool = False, log_json: bool = False) -> None:
    """Install the structlog formatter on the root handler.

    Args:
        verbose: ``cmdbctl.*`` loggers emit DEBUG; otherwise WARNING and up.
        log_json: Render JSON lines instead of console output.
    """
    structlog.contextvars.clear_contextvars()

    pre_chain: list[structlog.types.Processor] = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso", utc=True),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
    ]

    renderer: structlog.types.Processor
    if log_json:
        pre_chain.append(structlog.processors.format_exc_info)
        renderer = structlog.processors.JSONRenderer(sort_keys=True)
    else:
        renderer = structlog.dev.ConsoleRenderer(colors=sys.stderr.isatty())

    structlog.configure(
        processors=[*pre_chain, structlog.stdlib.ProcessorFormatter.wrap_for_formatter],
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=False,
    )

    handler = logging.StreamHandler(sys.stderr)
    handler.setFormatter(
        structlog.stdlib.ProcessorFormatter(
            foreign_pre_chain=pre_chain,
            processors=[structlog.stdlib.ProcessorFormatter.remove_processors_meta, renderer],
        )
    )

    root = logging.getLogger()
    root.handlers.clear()
    root.addHandler(handler)
    root.setLevel(logging.WARNING)

    logging.getLogger("cmdbctl").setLevel(logging.DEBUG if verbose else logging.WARNING)
    for name in QUIET_LOGGERS:
        logging.getLogger(name).setLevel(logging.WARNING)


def bind_log_context(**values: str | None) -> None:
    """Attach values (``command``, ``actor``) to every later log record.

    ``None`` values are skipped.
    """
    structlog.contextvars.bind_contextvars(
        **{key: value for key, value in values.items() if value is not None}
    )
