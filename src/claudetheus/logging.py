import logging
import sys

import structlog


def setup_logging(level: "str", json_output: "bool | None" = None) -> "None":
    """
    maps string log level to logging module levels and configures
    structlog on stderr, so report output on stdout stays parseable.
    Console rendering when stderr is a terminal, one JSON object per
    event otherwise (or when json_output forces it).
    """
    if json_output is None:
        json_output = not sys.stderr.isatty()

    numeric_level = getattr(logging, level.upper(), logging.INFO)
    logging.basicConfig(
        format="%(message)s",
        level=numeric_level,
        stream=sys.stderr,
    )

    processors: "list[structlog.types.Processor]" = [
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_log_level,
        structlog.stdlib.add_logger_name,
        structlog.processors.TimeStamper(fmt="iso"),
    ]
    if json_output:
        processors += [
            structlog.processors.dict_tracebacks,
            structlog.processors.JSONRenderer(),
        ]
    else:
        processors.append(structlog.dev.ConsoleRenderer())

    structlog.configure(
        processors=processors,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
