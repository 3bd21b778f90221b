import logging.config
import os

from dotenv import load_dotenv

load_dotenv()


class Config:
    MILVUS_URI = str(os.getenv("MILVUS_URI", ""))
    MILVUS_DB_NAME = str(os.getenv("MILVUS_DB_NAME", ""))
    MILVUS_CONN_TIMEOUT = float(os.getenv("MILVUS_CONN_TIMEOUT", "10.0"))
    MILVUS_CLOSE_WAIT = float(os.getenv("MILVUS_CLOSE_WAIT", "10.0"))
    MILVUS_LOG_LEVEL = str(os.getenv("MILVUS_LOG_LEVEL", "WARNING")).upper()

    DEFAULT_HOST = "localhost"
    DEFAULT_PORT = "19530"
    GRPC_ADDRESS = f"{DEFAULT_HOST}:{DEFAULT_PORT}"
    GRPC_URI = f"tcp://{GRPC_ADDRESS}"

    KEEP_ALIVE_TIME_MS = 55000

    WaitTimeDurationWhenLoad = 0.2  # in seconds
    WaitTimeDurationWhenIndex = 0.5
    WaitTimeDurationWhenFlush = 0.5
    MaxVarCharLengthKey = "max_length"


# logging
COLORS = {
    "HEADER": "\033[95m",
    "INFO": "\033[92m",
    "DEBUG": "\033[94m",
    "WARNING": "\033[93m",
    "ERROR": "\033[95m",
    "CRITICAL": "\033[91m",
    "ENDC": "\033[0m",
}


class ColorFulFormatColMixin:
    def format_col(self, message_str: str, level_name: str):
        if level_name in COLORS:
            message_str = COLORS.get(level_name) + message_str + COLORS.get("ENDC")
        return message_str


class ColorfulFormatter(logging.Formatter, ColorFulFormatColMixin):
    def format(self, record: logging.LogRecord):
        message_str = super().format(record)

        return self.format_col(message_str, level_name=record.levelname)


def init_log(log_level: str):
    logging_config = {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s [%(levelname)s][%(funcName)s]: %(message)s (%(filename)s:%(lineno)s)",
            },
            "colorful_console": {
                "format": "%(asctime)s | %(levelname)s: %(message)s (%(filename)s:%(lineno)s) (%(process)s)",
                "()": ColorfulFormatter,
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "formatter": "colorful_console",
            },
            "no_color_console": {
                "class": "logging.StreamHandler",
                "formatter": "default",
            },
        },
        "loggers": {
            "milvus_binding": {
                "handlers": ["no_color_console"],
                "level": log_level,
                "propagate": False,
            },
        },
    }
    logging.config.dictConfig(logging_config)


init_log(Config.MILVUS_LOG_LEVEL)
