import os
import time
from typing import Iterable, Optional

from logger import logger


def missing_env_vars(names: Iterable[str], environ: Optional[dict[str, str]] = None) -> list[str]:
    env = os.environ if environ is None else environ
    return [name for name in names if not env.get(name)]


def validate_env_vars(*names: str) -> None:
    # Empty values count as missing, same as an unset variable
    missing = missing_env_vars(names)
    if missing:
        logger.error_and_exit(f"Missing required environment variables: {' '.join(missing)}")


def calculate_elapsed_time(start: float, end: float) -> tuple[int, int]:
    minutes, seconds = divmod(int(end - start), 60)
    return minutes, seconds


def header(name: str) -> None:
    logger.info(f"=== {name} ===")
    logger.info(f"Starting at: {time.strftime('%a %b %d %H:%M:%S %Z %Y')}")


def footer(name: str) -> None:
    logger.info(f"=== {name} PASSED ===")
    logger.info(f"Completed at: {time.strftime('%a %b %d %H:%M:%S %Z %Y')}")


def is_yaml(path: str) -> bool:
    return path.endswith(('.yaml', '.yml'))
