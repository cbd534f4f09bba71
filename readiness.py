import time
from typing import Iterable, Optional

import poller
from common import calculate_elapsed_time
from components import Component, ResourceWait, Stage
from endpoints import wait_for_endpoints
from k8sClient import K8sClient
from logger import logger


def wait_for_resource(client: K8sClient, resource: ResourceWait, namespace: str, timeout: str = "300s") -> None:
    logger.info(f"  Waiting for {resource.target} ({resource.condition})...")
    ret = client.wait(resource.target, resource.condition, namespace, timeout)
    if not ret.success():
        logger.info(ret)
        logger.error_and_exit(f"{resource.target} in {namespace} did not reach '{resource.condition}' within {timeout}")


def wait_for_stages(client: K8sClient, namespace: str, stages: Iterable[Stage], timeout: str = "300s") -> None:
    """Waits for every resource of every stage, strictly in order.

    Storage comes before the deployments that connect to it, so a wait
    failing here points at the lowest broken tier. The first failure ends
    the process.
    """
    stages = list(stages)
    logger.info(f"Waiting for resources in {namespace} in dependency order...")
    start = time.time()
    for i, stage in enumerate(stages, 1):
        logger.info(f"Stage {i}: Waiting for {stage.name}...")
        stage_start = time.time()
        for resource in stage.waits:
            wait_for_resource(client, resource, namespace, timeout)
        minutes, seconds = calculate_elapsed_time(stage_start, time.time())
        logger.info(f"Stage {i}: {stage.name} ready ({minutes}m {seconds}s)")
    minutes, seconds = calculate_elapsed_time(start, time.time())
    logger.info(f"All resources ready in {namespace} after {minutes}m {seconds}s")


def display_status(client: K8sClient, component: Component, namespace: str) -> None:
    logger.info(f"{component.name} status:")
    if component.status_match:
        ret = client.kubectl("get", component.status_kinds, "-n", namespace)
        lines = ret.out.splitlines()
        for line in lines[:1] + [x for x in lines[1:] if any(m in x for m in component.status_match)]:
            logger.info(line)
    elif component.status_selector:
        client.show("get", component.status_kinds, "-n", namespace, "-l", component.status_selector)
    else:
        client.show("get", component.status_kinds, "-n", namespace)


def verify_component(
    client: K8sClient,
    component: Component,
    namespace: str,
    *,
    timeout: str = "300s",
    use_endpoint_slices: bool = True,
    creation_timeout: Optional[int] = None,
    poll_interval: int = poller.DEFAULT_INTERVAL,
) -> None:
    logger.info(f"Verifying {component.name} installation...")
    if creation_timeout is not None and component.creation_probes:
        check = poller.resources_exist(client, namespace, component.creation_probes)
        poller.wait_for_resource_creation(f"{component.name} resources", creation_timeout, check, poll_interval)

    wait_for_stages(client, namespace, component.stages, timeout)
    wait_for_endpoints(client, namespace, component.services, timeout, use_endpoint_slices, component.name)
    display_status(client, component, namespace)
    logger.info(f"{component.name} installation verified!")
