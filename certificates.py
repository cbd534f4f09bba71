from typing import Optional

from k8sClient import K8sClient
from logger import logger


READY_JSONPATH = '{.status.conditions[?(@.type=="Ready")].status}'


def check_cluster_issuer(client: K8sClient, name: str) -> None:
    logger.info(f"Checking ClusterIssuer {name}...")
    if not client.exists("clusterissuer", name):
        logger.error_and_exit(f"ClusterIssuer {name} not found")


def find_certificate(client: K8sClient, namespace: str, match: str = "harbor") -> Optional[str]:
    for name in client.names("certificate", namespace):
        if match in name:
            return name
    return None


def certificate_ready(client: K8sClient, name: str, namespace: str) -> bool:
    return client.jsonpath("certificate", name, namespace, READY_JSONPATH) == "True"


def check_certificate(client: K8sClient, namespace: str, match: str = "harbor") -> str:
    """Requires a matching Certificate to exist. Readiness only warns.

    Public ACME issuance can lag behind the rest of the install; the UI
    checks afterwards tell whether TLS actually works.
    """
    logger.info(f"Checking Certificate resource for {match}...")
    name = find_certificate(client, namespace, match)
    if name is None:
        logger.error_and_exit(f"No {match} Certificate found in {namespace}")
        return ""

    logger.info(f"Found certificate: {name}")
    if certificate_ready(client, name, namespace):
        logger.info(f"Certificate {name} is ready")
    else:
        logger.warning(f"Certificate {name} is not ready yet")
        client.show("get", "certificate", name, "-n", namespace, "-o", "jsonpath={.status}")
    return name


def wait_certificate_ready(client: K8sClient, name: str, namespace: str, timeout: str = "300s") -> None:
    logger.info(f"Waiting for cert-manager to issue certificate {name}...")
    ret = client.wait(f"certificate/{name}", "condition=Ready", namespace, timeout)
    if not ret.success():
        client.show("describe", "certificate", name, "-n", namespace)
        logger.error_and_exit(f"Certificate {name} in {namespace} not ready within {timeout}")
    logger.info(f"Certificate {name} issued and ready")
