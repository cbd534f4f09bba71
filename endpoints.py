from typing import Iterable

from k8sClient import K8sClient
from logger import logger


def wait_for_service_endpoints(client: K8sClient, service: str, namespace: str, timeout: str = "300s", use_endpoint_slices: bool = True) -> None:
    # Ready pods are not enough, the service must have routed addresses
    logger.info(f"  Waiting for {service} service to have endpoints...")
    if use_endpoint_slices:
        ret = client.wait("endpointslice", "jsonpath={.endpoints[0]}", namespace, timeout, selector=f"kubernetes.io/service-name={service}")
    else:
        ret = client.wait(f"endpoints/{service}", "jsonpath={.subsets}", namespace, timeout)
    if not ret.success():
        logger.info(ret)
        logger.error_and_exit(f"Service {service} in {namespace} has no endpoints after {timeout}")


def wait_for_endpoints(client: K8sClient, namespace: str, services: Iterable[str], timeout: str = "300s", use_endpoint_slices: bool = True, component: str = "") -> None:
    label = f"{component} service endpoints" if component else "service endpoints"
    logger.info(f"Waiting for {label}...")
    for service in services:
        wait_for_service_endpoints(client, service, namespace, timeout, use_endpoint_slices)
    logger.info(f"All {label} ready")
