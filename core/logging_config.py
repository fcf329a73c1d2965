import logging.config
import structlog
import coloredlogs

from core.config import get_settings


class ColoredProcessorFormatter(structlog.stdlib.ProcessorFormatter, coloredlogs.ColoredFormatter):
    """Renders the event dict first, then lets coloredlogs lay out the line"""


# Applied to records from plain `logging` callers (uvicorn, sqlalchemy, ...)
# so they carry the same keys as structlog events
FOREIGN_PRE_CHAIN = [
    structlog.stdlib.ExtraAdder(),
]

# Level and timestamp are part of the line layout in console mode
CONSOLE_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"

LEVEL_STYLES = {
    'debug': {'color': 'blue'},
    'info': {'color': 'green'},
    'warning': {'color': 'yellow'},
    'error': {'color': 'red'},
    'critical': {'bold': True, 'color': 'red'}
}


def setup_logging():
    settings = get_settings()
    handler = "json" if settings.LOG_FORMAT == "json" else "console"

    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "json": {
                "()": structlog.stdlib.ProcessorFormatter,
                "foreign_pre_chain": FOREIGN_PRE_CHAIN,
                "processors": [
                    structlog.stdlib.add_log_level,
                    structlog.stdlib.add_logger_name,
                    structlog.processors.TimeStamper(fmt="iso", key="timestamp"),
                    structlog.processors.format_exc_info,
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    structlog.processors.JSONRenderer(),
                ],
            },
            "console": {
                "()": ColoredProcessorFormatter,
                "fmt": CONSOLE_FORMAT,
                "level_styles": LEVEL_STYLES,
                "foreign_pre_chain": FOREIGN_PRE_CHAIN,
                "processors": [
                    structlog.processors.format_exc_info,
                    structlog.stdlib.ProcessorFormatter.remove_processors_meta,
                    # event first, then the bound ids as key=value pairs
                    structlog.processors.KeyValueRenderer(key_order=["event"], drop_missing=True),
                ],
            }
        },
        "handlers": {
            "json": {
                "class": "logging.StreamHandler",
                "formatter": "json"
            },
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "console"
            }
        },
        "loggers": {
            "": {
                "handlers": [handler],
                "level": settings.LOG_LEVEL
            },
            # SQL echo is controlled by DB_ECHO, keep the engine logger quiet otherwise
            "sqlalchemy.engine": {
                "level": "WARNING"
            }
        }
    }

    logging.config.dictConfig(logging_config)

    # structlog only filters and collects; rendering happens in the handler's
    # formatter so both kinds of records share one output format
    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.PositionalArgumentsFormatter(),
            structlog.processors.StackInfoRenderer(),
            structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )
