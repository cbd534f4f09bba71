import time
from typing import Callable

import requests
import tenacity

from logger import logger


REQUEST_TIMEOUT = 10


def _probe(url: str, verify_tls: bool, head: bool) -> bool:
    try:
        method = requests.head if head else requests.get
        response = method(url, verify=verify_tls, timeout=REQUEST_TIMEOUT, allow_redirects=True)
    except requests.exceptions.RequestException as e:
        logger.debug(f"{url}: {type(e).__name__}: {e}")
        return False
    logger.debug(f"{url}: HTTP {response.status_code}")
    return response.ok


def check_ui(
    url: str,
    retries: int = 10,
    interval: float = 15,
    verify_tls: bool = False,
    head: bool = False,
    *,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Probes `url` until it answers with a 2xx status, at most `retries` times."""
    logger.info(f"Testing Harbor UI accessibility at: {url}")

    def before(state: tenacity.RetryCallState) -> None:
        logger.info(f"Attempt {state.attempt_number}/{retries}: Testing Harbor UI...")

    def before_sleep(state: tenacity.RetryCallState) -> None:
        logger.info(f"Harbor UI not ready yet, waiting {interval}s...")

    retrying = tenacity.Retrying(
        stop=tenacity.stop_after_attempt(retries),
        wait=tenacity.wait_fixed(interval),
        retry=tenacity.retry_if_result(lambda ok: not ok),
        retry_error_callback=lambda state: False,
        before=before,
        before_sleep=before_sleep,
        sleep=sleep,
    )
    ok = bool(retrying(_probe, url, verify_tls, head))
    if ok:
        logger.info("Harbor UI is accessible!")
    else:
        logger.error(f"Harbor UI not accessible after {retries} attempts")
    return ok


def ui_status(url: str, verify_tls: bool = False) -> int:
    try:
        response = requests.get(url, verify=verify_tls, timeout=REQUEST_TIMEOUT)
    except requests.exceptions.RequestException as e:
        logger.info(f"{url}: {e}")
        return 0
    return response.status_code


def verify_ui_status(url: str, verify_tls: bool = False) -> bool:
    logger.info("Verifying Harbor UI HTTP status...")
    status = ui_status(url, verify_tls)
    logger.info(f"HTTP Status: {status}")
    if status == 200:
        logger.info("Harbor UI returned HTTP 200")
        return True
    logger.error(f"Harbor UI returned HTTP {status}")
    return False


def certificate_valid(url: str) -> bool:
    logger.info("Testing certificate validity...")
    if _probe(url, verify_tls=True, head=True):
        logger.info("Harbor UI accessible with a valid certificate")
        return True
    logger.warning("Harbor UI accessible but certificate may not be valid")
    return False


def redirects_to_https(http_url: str) -> bool:
    logger.info("Testing HTTP to HTTPS redirect...")
    try:
        response = requests.head(http_url, timeout=REQUEST_TIMEOUT, allow_redirects=False)
    except requests.exceptions.RequestException as e:
        logger.warning(f"HTTP to HTTPS redirect check failed: {e}")
        return False
    if response.headers.get("Location", "").startswith("https://"):
        logger.info("HTTP to HTTPS redirect is working")
        return True
    logger.warning("HTTP to HTTPS redirect may not be configured properly")
    return False
