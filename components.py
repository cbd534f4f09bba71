from dataclasses import dataclass, field


AVAILABLE = "condition=available"


def ready_replicas(n: int = 1) -> str:
    return f"jsonpath={{.status.readyReplicas}}={n}"


@dataclass(frozen=True)
class ResourceWait:
    kind: str
    name: str
    condition: str

    @property
    def target(self) -> str:
        return f"{self.kind}/{self.name}"


@dataclass(frozen=True)
class Stage:
    name: str
    waits: tuple[ResourceWait, ...]


@dataclass(frozen=True)
class Component:
    name: str
    stages: tuple[Stage, ...]
    services: tuple[str, ...]
    creation_probes: tuple[tuple[str, str], ...] = ()
    status_kinds: str = "deployment,service"
    status_selector: str = ""
    status_match: tuple[str, ...] = field(default=())

    def resources(self) -> list[ResourceWait]:
        return [w for s in self.stages for w in s.waits]


def _deployments(*names: str) -> tuple[ResourceWait, ...]:
    return tuple(ResourceWait("deployment", n, AVAILABLE) for n in names)


def _statefulsets(*names: str) -> tuple[ResourceWait, ...]:
    return tuple(ResourceWait("statefulset", n, ready_replicas()) for n in names)


HARBOR_STORAGE = Stage("StatefulSets", _statefulsets("harbor-database", "harbor-redis", "harbor-trivy"))
HARBOR_APPS = Stage("Harbor Deployments", _deployments("harbor-core", "harbor-portal", "harbor-registry", "harbor-jobservice"))
REPLICATED_SDK = Stage("Replicated SDK", _deployments("replicated"))

HARBOR_SERVICES = (
    "harbor-database",
    "harbor-redis",
    "harbor-core",
    "harbor-portal",
    "harbor-registry",
    "harbor-jobservice",
    "harbor-trivy",
)


def harbor(include_sdk: bool = True) -> Component:
    stages = (HARBOR_STORAGE, HARBOR_APPS) + ((REPLICATED_SDK,) if include_sdk else ())
    services = HARBOR_SERVICES + (("replicated",) if include_sdk else ())
    return Component(
        name="Harbor",
        stages=stages,
        services=services,
        creation_probes=(("deployment", "harbor-core"), ("statefulset", "harbor-database"), ("statefulset", "harbor-redis")),
        status_kinds="deployment,statefulset,service,ingress",
        status_match=("harbor", "replicated"),
    )


CERT_MANAGER = Component(
    name="cert-manager",
    stages=(Stage("cert-manager", _deployments("cert-manager", "cert-manager-webhook", "cert-manager-cainjector")),),
    services=("cert-manager", "cert-manager-webhook"),
    creation_probes=(("deployment", "cert-manager"), ("deployment", "cert-manager-webhook"), ("deployment", "cert-manager-cainjector")),
    status_selector="app.kubernetes.io/name=cert-manager",
)

INGRESS_NGINX = Component(
    name="NGINX Ingress Controller",
    stages=(Stage("NGINX Ingress Controller", _deployments("ingress-nginx-controller")),),
    services=("ingress-nginx-controller-admission",),
    creation_probes=(("deployment", "ingress-nginx-controller"),),
    status_selector="app.kubernetes.io/name=ingress-nginx",
)


def by_name(name: str, include_sdk: bool = True) -> Component:
    catalog = {
        "harbor": harbor(include_sdk),
        "cert-manager": CERT_MANAGER,
        "ingress-nginx": INGRESS_NGINX,
    }
    if name not in catalog:
        raise KeyError(f"Unknown component {name!r}, expected one of {', '.join(catalog)}")
    return catalog[name]


COMPONENT_NAMES = ("harbor", "cert-manager", "ingress-nginx")
