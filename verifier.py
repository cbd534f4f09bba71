import os
import time
from typing import Callable, Optional

import certificates
import common
import components
import ingress
import readiness
import ui
from hvtConfig import HvtConfig
from k8sClient import K8sClient
from logger import logger


REQUIRED_ENV = {
    "kots": (),
    "embedded": ("LICENSE_ID", "HOSTNAME"),
    "airgap": ("LICENSE_ID", "HOSTNAME"),
    "helm": (),
}

TITLES = {
    "kots": "Harbor KOTS Installation Test",
    "embedded": "Harbor Embedded Cluster Installation Test",
    "airgap": "Harbor Embedded Cluster Air Gap Installation Test",
    "helm": "Harbor Helm Installation Test",
}


class InstallVerifier:
    def __init__(self, client: K8sClient, config: HvtConfig, *, sleep: Callable[[float], None] = time.sleep):
        self._client = client
        self._cc = config
        self._sleep = sleep
        self.verified: list[str] = []

    def _verify(self, component: components.Component, namespace: str) -> None:
        creation_timeout = self._cc.creation_timeout if self._cc.poll_creation else None
        readiness.verify_component(
            self._client,
            component,
            namespace,
            timeout=self._cc.wait_timeout,
            use_endpoint_slices=self._cc.use_endpoint_slices,
            creation_timeout=creation_timeout,
            poll_interval=self._cc.poll_interval,
        )
        self.verified.append(component.name)

    def verify_components(self) -> None:
        # The embedded cluster deploys charts in this order
        if self._cc.verify_ingress_nginx:
            self._verify(components.INGRESS_NGINX, self._cc.ingress_nginx_namespace)
        if self._cc.verify_cert_manager:
            self._verify(components.CERT_MANAGER, self._cc.cert_manager_namespace)
        self._verify(components.harbor(self._cc.include_sdk), self._cc.harbor_namespace)

    def verify_tls(self) -> None:
        ns = self._cc.harbor_namespace
        if self._cc.cluster_issuer:
            certificates.check_cluster_issuer(self._client, self._cc.cluster_issuer)
        if self._cc.certificate:
            certificates.wait_certificate_ready(self._client, self._cc.certificate, ns, self._cc.wait_timeout)
        else:
            certificates.check_certificate(self._client, ns)

    def verify_ui(self, url: str, *, strict_tls_checks: bool = False) -> None:
        if not ui.check_ui(url, self._cc.ui_retries, self._cc.ui_interval, sleep=self._sleep):
            logger.info("Debugging ingress configuration...")
            self._client.show("get", "ingress", "-n", self._cc.harbor_namespace, "-o", "yaml")
            self._client.show("get", "service", "-n", self._cc.ingress_nginx_namespace)
            logger.error_and_exit(f"Harbor UI not accessible at {url}")

        if strict_tls_checks and url.startswith("https://"):
            ui.certificate_valid(url)
            ui.redirects_to_https("http://" + url[len("https://"):])

    def _hostname(self, hostname: Optional[str]) -> str:
        return hostname or os.environ.get("HOSTNAME", "")

    def verify(self, flavour: str, *, hostname: Optional[str] = None, url: Optional[str] = None, skip_ui: bool = False) -> None:
        common.validate_env_vars(*REQUIRED_ENV[flavour])
        title = TITLES[flavour]
        common.header(title)

        if flavour in ("embedded", "airgap"):
            self._verify_embedded(self._hostname(hostname), skip_ui)
        elif flavour == "helm":
            self._verify_helm(url, skip_ui)
        else:
            self._verify_kots(url, skip_ui)

        common.footer(title)

    def _verify_embedded(self, hostname: str, skip_ui: bool) -> None:
        logger.info(f"Harbor should be accessible at: https://{hostname}")
        if not self._client.nodes_ready():
            logger.error_and_exit("Not all cluster nodes are Ready")
        self.verify_components()
        self.verify_tls()
        ingress.check_ingress(self._client, self._cc.harbor_namespace)
        if not skip_ui:
            self.verify_ui(f"https://{hostname}", strict_tls_checks=True)

    def _verify_helm(self, url: Optional[str], skip_ui: bool) -> None:
        self.verify_tls()
        # Harbor before ingress-nginx
        self._verify(components.harbor(self._cc.include_sdk), self._cc.harbor_namespace)
        if self._cc.verify_ingress_nginx:
            self._verify(components.INGRESS_NGINX, self._cc.ingress_nginx_namespace)
        ingress.check_ingress(self._client, self._cc.harbor_namespace)
        if skip_ui:
            return
        if url is None:
            lb = ingress.wait_for_lb_hostname(self._client, "ingress-nginx-controller", self._cc.ingress_nginx_namespace, self._cc.lb_timeout, self._cc.lb_interval, sleep=self._sleep)
            url = f"https://{lb}"
        self.verify_ui(url)

    def _verify_kots(self, url: Optional[str], skip_ui: bool) -> None:
        self.verify_components()
        if url is not None and not skip_ui:
            self.verify_ui(url)
