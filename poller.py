import time
from typing import Callable, Iterable

import timer
from k8sClient import K8sClient
from logger import logger


Check = Callable[[], bool]

DEFAULT_INTERVAL = 5


def wait_for_resource_creation(
    stage_name: str,
    timeout: float,
    check: Check,
    interval: float = DEFAULT_INTERVAL,
    *,
    clock: timer.Clock = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> bool:
    """Polls `check` every `interval` seconds until it passes or `timeout` runs out.

    Resources deployed asynchronously (e.g. by the embedded cluster after the
    installer returns) do not exist yet when `kubectl wait` would be called,
    and `kubectl wait` fails immediately on missing objects.

    Returns True once the check passes. Returns False on timeout without
    failing, the caller decides whether to continue.
    """
    logger.info(f"Stage: {stage_name}")
    deadline = timer.Timer(timeout, clock=clock)
    while not deadline.triggered():
        elapsed = int(deadline.elapsed())
        logger.info(f"Checking for {stage_name} (elapsed: {elapsed}s/{int(timeout)}s)...")
        try:
            if check():
                logger.info(f"{stage_name} detected after {elapsed}s")
                return True
        except Exception as e:
            logger.debug(f"Check for {stage_name} failed: {e}")

        logger.debug(f"{stage_name} not ready yet, checking again in {interval}s")
        sleep(interval)

    logger.warning(f"{stage_name} timeout reached ({int(timeout)}s), proceeding anyway")
    return False


def resources_exist(client: K8sClient, namespace: str, targets: Iterable[tuple[str, str]]) -> Check:
    targets = list(targets)

    def check() -> bool:
        return all(client.exists(kind, name, namespace) for kind, name in targets)

    return check
