from types import SimpleNamespace
from typing import Any

import kubernetes
import pytest
import urllib3

import host
import hvtConfig
from conftest import FakeHost, fail, ok
from k8sClient import K8sClient


KUBECONFIG = """\
apiVersion: v1
kind: Config
clusters:
- name: k0s
  cluster:
    server: https://localhost:6443
"""


def _node(name: str, ready: str) -> SimpleNamespace:
    conditions = [SimpleNamespace(type="MemoryPressure", status="False"), SimpleNamespace(type="Ready", status=ready)]
    return SimpleNamespace(metadata=SimpleNamespace(name=name), status=SimpleNamespace(conditions=conditions))


class FakeApi:
    def __init__(self, nodes: Any) -> None:
        self.nodes = nodes
        self.configs: list[dict[str, Any]] = []

    def new_client_from_config_dict(self, config: dict[str, Any]) -> str:
        self.configs.append(config)
        return "api-client"

    def core_v1(self, api_client: str) -> SimpleNamespace:
        def list_node() -> SimpleNamespace:
            if isinstance(self.nodes, Exception):
                raise self.nodes
            return SimpleNamespace(items=self.nodes)

        return SimpleNamespace(list_node=list_node)


@pytest.fixture
def api(monkeypatch: pytest.MonkeyPatch) -> FakeApi:
    fake = FakeApi([_node("controller-1", "True")])
    monkeypatch.setattr(kubernetes.config, "new_client_from_config_dict", fake.new_client_from_config_dict)
    monkeypatch.setattr(kubernetes.client, "CoreV1Api", fake.core_v1)
    return fake


def _embedded_client(fh: FakeHost) -> K8sClient:
    return K8sClient(hvtConfig.EMBEDDED_KUBECTL, hvtConfig.EMBEDDED_KUBECONFIG, h=fh)  # type: ignore


def test_local_nodes_use_sudo_kubeconfig(api: FakeApi) -> None:
    fh = FakeHost(lambda argv: ok(KUBECONFIG))
    client = _embedded_client(fh)

    assert client.nodes_ready()
    assert fh.commands == [["sudo", "cat", hvtConfig.EMBEDDED_KUBECONFIG]]
    assert api.configs[0]["clusters"][0]["cluster"]["server"] == "https://localhost:6443"

    # the API client is built once
    assert client.get_nodes() == ["controller-1"]
    assert len(fh.commands) == 1


def test_local_kubeconfig_without_sudo(api: FakeApi) -> None:
    fh = FakeHost(lambda argv: ok(KUBECONFIG))
    K8sClient("kubectl", "/home/ci/.kube/config", h=fh).nodes_ready()  # type: ignore
    assert fh.commands == [["cat", "/home/ci/.kube/config"]]


def test_local_not_ready_node(api: FakeApi) -> None:
    api.nodes = [_node("controller-1", "True"), _node("worker-1", "False"), _node("worker-2", "Unknown")]
    client = _embedded_client(FakeHost(lambda argv: ok(KUBECONFIG)))

    assert not client.nodes_ready()
    assert client.is_ready("controller-1")
    assert not client.is_ready("worker-1")
    assert not client.is_ready("worker-2")
    assert not client.is_ready("missing")


def test_local_no_nodes_is_not_ready(api: FakeApi) -> None:
    api.nodes = []
    assert not _embedded_client(FakeHost(lambda argv: ok(KUBECONFIG))).nodes_ready()


def test_unreachable_api_exits(api: FakeApi) -> None:
    api.nodes = urllib3.exceptions.MaxRetryError(None, "/api/v1/nodes")
    with pytest.raises(SystemExit):
        _embedded_client(FakeHost(lambda argv: ok(KUBECONFIG))).nodes_ready()


def test_unreadable_kubeconfig_exits(api: FakeApi) -> None:
    fh = FakeHost(lambda argv: fail("cat: /var/lib/embedded-cluster/k0s/pki/admin.conf: Permission denied"))
    with pytest.raises(SystemExit):
        _embedded_client(fh).nodes_ready()


def _remote_cluster(nodes: str) -> FakeHost:
    def responder(argv: list[str]) -> host.Result:
        if "cat" in argv:
            return ok(KUBECONFIG)
        return ok(nodes)

    return FakeHost(responder, remote=True)


def test_remote_nodes_go_through_kubectl(monkeypatch: pytest.MonkeyPatch) -> None:
    def no_api(*args: Any) -> None:
        raise AssertionError("the Kubernetes API must not be used for a remote host")

    monkeypatch.setattr(kubernetes.config, "new_client_from_config_dict", no_api)
    monkeypatch.setattr(kubernetes.config, "new_client_from_config", no_api)

    fh = _remote_cluster("controller-1\tTrue\nworker-1\tTrue\n")
    client = _embedded_client(fh)

    assert client.nodes_ready()
    assert client.get_nodes() == ["controller-1", "worker-1"]
    argv = fh.commands[0]
    assert argv[:3] == hvtConfig.EMBEDDED_KUBECTL.split()
    assert argv[3:6] == ["get", "nodes", "-o"]
    assert argv[6].startswith("jsonpath={range .items[*]}")


def test_remote_not_ready_node() -> None:
    client = _embedded_client(_remote_cluster("controller-1\tTrue\nworker-1\tFalse\nworker-2\t\n"))
    assert not client.nodes_ready()
    assert client.is_ready("controller-1")
    assert not client.is_ready("worker-2")


def test_remote_kubectl_failure_exits() -> None:
    fh = FakeHost(lambda argv: fail("The connection to the server localhost:6443 was refused"), remote=True)
    with pytest.raises(SystemExit):
        _embedded_client(fh).nodes_ready()
