from typing import Optional, Union

from pydantic import field_validator

import configLoader
import timer


FLAVOURS = ("kots", "embedded", "airgap", "helm")

EMBEDDED_KUBECONFIG = "/var/lib/embedded-cluster/k0s/pki/admin.conf"
EMBEDDED_KUBECTL = f"sudo KUBECONFIG={EMBEDDED_KUBECONFIG} /var/lib/embedded-cluster/bin/kubectl"

DEFAULT_ALLOWED_DOMAINS = ("images.alexparker.info", "updates.alexparker.info")


class HvtConfig(configLoader.StrictBaseModel):
    kubectl: str = "kubectl"
    kubeconfig: Optional[str] = None

    harbor_namespace: str = "harbor-enterprise"
    cert_manager_namespace: str = "cert-manager"
    ingress_nginx_namespace: str = "ingress-nginx"

    wait_timeout: str = "300s"
    creation_timeout: int = 180
    poll_interval: int = 5
    use_endpoint_slices: bool = True
    include_sdk: bool = True

    cluster_issuer: Optional[str] = None
    certificate: Optional[str] = None
    verify_cert_manager: bool = False
    verify_ingress_nginx: bool = False
    poll_creation: bool = False

    ui_retries: int = 10
    ui_interval: int = 15
    lb_timeout: int = 600
    lb_interval: int = 15

    allowed_domains: tuple[str, ...] = DEFAULT_ALLOWED_DOMAINS
    report_retries: int = 5
    report_delay: int = 5

    ssh_host: Optional[str] = None
    ssh_user: str = "root"

    @field_validator("wait_timeout")
    @classmethod
    def _valid_duration(cls, v: str) -> str:
        timer.to_seconds(v)
        return v

    @field_validator("creation_timeout", "poll_interval", "ui_retries", "ui_interval", "lb_timeout", "lb_interval", "report_retries")
    @classmethod
    def _positive(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("must be positive")
        return v

    def with_overrides(self, **overrides: Union[str, int, bool, None]) -> 'HvtConfig':
        values = {k: v for k, v in overrides.items() if v is not None}
        return self.model_validate({**self.model_dump(), **values})


def _embedded_profile(issuer: str) -> dict[str, Union[str, int, bool]]:
    return {
        "kubectl": EMBEDDED_KUBECTL,
        "kubeconfig": EMBEDDED_KUBECONFIG,
        "harbor_namespace": "kotsadm",
        "cert_manager_namespace": "kotsadm",
        "ingress_nginx_namespace": "kotsadm",
        "verify_cert_manager": True,
        "verify_ingress_nginx": True,
        "poll_creation": True,
        "cluster_issuer": issuer,
        "ui_interval": 30,
    }


PROFILES: dict[str, dict[str, Union[str, int, bool]]] = {
    "kots": {},
    "embedded": _embedded_profile("letsencrypt-prod"),
    "airgap": _embedded_profile("letsencrypt-staging"),
    "helm": {
        "verify_ingress_nginx": True,
        "certificate": "harbor-tls",
        "ui_interval": 15,
    },
}


def profile(flavour: str, base: Optional[HvtConfig] = None) -> HvtConfig:
    """Layers the defaults of an install flavour underneath `base`.

    Fields that `base` sets explicitly (from a config file) win over the
    flavour defaults.
    """
    if flavour not in PROFILES:
        raise ValueError(f"Unknown install flavour {flavour!r}, expected one of {', '.join(FLAVOURS)}")
    explicit = base.model_dump(exclude_unset=True) if base is not None else {}
    return HvtConfig.model_validate({**PROFILES[flavour], **explicit})


def load(path: str) -> HvtConfig:
    return configLoader.load(path, HvtConfig)
