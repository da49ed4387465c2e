import logging
import logging.handlers
import sys
from pathlib import Path
from pythonjsonlogger.json import JsonFormatter
from middleware.request_id import RequestIDLogFilter


class AppJsonFormatter(JsonFormatter):
    """
    JSON formatter used by the file handlers.
    Every entry carries where it was logged from and the request it belongs to.
    """
    def add_fields(self, log_record, record, message_dict):
        super().add_fields(log_record, record, message_dict)

        log_record['timestamp'] = record.created
        log_record['level'] = record.levelname
        log_record['logger'] = record.name
        log_record['function'] = record.funcName
        log_record['line'] = record.lineno
        log_record['request_id'] = getattr(record, "request_id", None)


def _rotating_file(path: Path, level: int, formatter: logging.Formatter) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(
        path,
        maxBytes=10 * 1024 * 1024,  # 10 MB
        backupCount=5,
        encoding='utf-8'
    )
    handler.setLevel(level)
    handler.setFormatter(formatter)
    handler.addFilter(RequestIDLogFilter())
    return handler


def setup_logging(log_level: str = "INFO", log_dir: str = "logs"):
    """
    Configure application-wide logging.

    Console output is human readable and honours `log_level`.
    `app.log` receives everything as JSON, `error.log` only ERROR and above.

    Args:
        log_level: Minimum console level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        log_dir: Directory where log files are written
    """
    log_path = Path(log_dir)
    log_path.mkdir(parents=True, exist_ok=True)

    numeric_level = getattr(logging, log_level.upper(), logging.INFO)

    json_formatter = AppJsonFormatter('%(timestamp)s %(level)s %(logger)s %(message)s')

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(numeric_level)
    console_handler.setFormatter(logging.Formatter(
        '%(asctime)s - %(name)s - %(levelname)s - [%(request_id)s] %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    ))
    console_handler.addFilter(RequestIDLogFilter())

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # handlers do the filtering

    # setup_logging may run more than once (tests, reloads)
    root_logger.handlers.clear()

    root_logger.addHandler(console_handler)
    root_logger.addHandler(_rotating_file(log_path / "app.log", logging.DEBUG, json_formatter))
    root_logger.addHandler(_rotating_file(log_path / "error.log", logging.ERROR, json_formatter))

    for noisy in ("uvicorn", "uvicorn.access", "uvicorn.error", "sqlalchemy.engine",
                  "passlib.handlers.bcrypt"):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    root_logger.info(
        "Logging configured",
        extra={
            "log_level": log_level,
            "log_dir": str(log_path.absolute())
        }
    )


def get_logger(name: str) -> logging.Logger:
    return logging.getLogger(name)
