import logging
import os
import sys
from typing import Any
from io import StringIO


LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class HvtLogger:
    def __init__(self, byte_limit: int = 20 * 1024 * 1024, lvl: int = logging.INFO, name: str = "HVT"):
        self.byte_limit = byte_limit
        self.emitted_bytes = 0
        self.capped = False
        self.buffer = StringIO()

        self.logger = logging.getLogger(name)
        self.logger.setLevel(lvl)
        self.logger.handlers.clear()
        self.logger.propagate = False

        # Records land in the buffer first so the byte cap can be enforced
        handler = logging.StreamHandler(self.buffer)
        prefix_fmt = "%(asctime)s %(levelname)s [th:%(thread)s] (%(filename)s:%(lineno)d)"
        handler.setFormatter(logging.Formatter(f"{prefix_fmt}: %(message)s", "%Y-%m-%d %H:%M:%S"))
        self.logger.addHandler(handler)

    def set_level(self, lvl: int) -> None:
        self.logger.setLevel(lvl)

    def _drain(self) -> str:
        content = self.buffer.getvalue()
        self.buffer.seek(0)
        self.buffer.truncate(0)
        return content

    def _flush(self, lvl: int) -> None:
        content = self._drain()
        if not content:
            return

        if not self.capped and self.emitted_bytes + len(content.encode('utf-8')) > self.byte_limit:
            # Past the cap only errors are printed
            self.capped = True
            self.logger.error(f"Log limit of {self.byte_limit} bytes exceeded, only errors are shown from now on")
            notice = self._drain()
            content = notice + content if lvl >= logging.ERROR else notice

        print(content, end='', flush=True)
        self.emitted_bytes += len(content.encode('utf-8'))

    def log(self, lvl: int, msg: Any, *args: Any, **kwargs: Any) -> None:
        if self.capped and lvl < logging.ERROR:
            return
        kwargs.setdefault("stacklevel", 2)
        self.logger.log(lvl, msg, *args, **kwargs)
        self._flush(lvl)

    def debug(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.DEBUG, msg, *args, stacklevel=3, **kwargs)

    def info(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.INFO, msg, *args, stacklevel=3, **kwargs)

    def warning(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.WARNING, msg, *args, stacklevel=3, **kwargs)

    def error(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, stacklevel=3, **kwargs)

    def critical(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.CRITICAL, msg, *args, stacklevel=3, **kwargs)

    def exception(self, msg: Any, *args: Any, **kwargs: Any) -> None:
        self.log(logging.ERROR, msg, *args, exc_info=True, stacklevel=3, **kwargs)

    def error_and_exit(self, msg: str, *, exit_code: int = -1) -> None:
        self.log(logging.ERROR, msg, stacklevel=3)
        sys.exit(exit_code)


def level_from_env(default: int = logging.INFO) -> int:
    env_level = os.environ.get("HVT_LOG_LEVEL", "").strip().upper()
    if env_level in LEVELS:
        return int(getattr(logging, env_level))
    return default


def configure_logger(lvl: int) -> HvtLogger:
    logger.set_level(lvl)
    return logger


logger = HvtLogger(lvl=level_from_env())
