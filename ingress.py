import time
from typing import Callable, Optional

import poller
import timer
from k8sClient import K8sClient
from logger import logger


LB_HOSTNAME_JSONPATH = "{.status.loadBalancer.ingress[0].hostname}"


def check_ingress(client: K8sClient, namespace: str, match: str = "harbor") -> str:
    logger.info(f"Checking {match} Ingress resources...")
    for name in client.names("ingress", namespace):
        if match in name:
            logger.info(f"Found ingress: {name}")
            return name
    logger.error_and_exit(f"No {match} Ingress found in {namespace}")
    return ""


def wait_for_lb_hostname(
    client: K8sClient,
    service: str,
    namespace: str,
    timeout: int = 600,
    interval: int = 15,
    *,
    clock: timer.Clock = time.monotonic,
    sleep: Callable[[float], None] = time.sleep,
) -> str:
    found: Optional[str] = None

    def provisioned() -> bool:
        nonlocal found
        value = client.jsonpath("service", service, namespace, LB_HOSTNAME_JSONPATH)
        if value and value != "null":
            found = value
        return found is not None

    poller.wait_for_resource_creation(f"LoadBalancer for {service}", timeout, provisioned, interval, clock=clock, sleep=sleep)
    if found is None:
        client.show("describe", "service", service, "-n", namespace)
        logger.error_and_exit(f"LoadBalancer for {service} failed to provision after {timeout}s")
        return ""
    logger.info(f"LoadBalancer provisioned with hostname: {found}")
    return found
