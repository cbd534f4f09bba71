import shlex
from typing import Optional

import kubernetes
import urllib3
import yaml

import host
import timer
from logger import logger


NODE_STATUS_JSONPATH = r'{range .items[*]}{.metadata.name}{"\t"}{.status.conditions[?(@.type=="Ready")].status}{"\n"}{end}'


class K8sClient:
    """kubectl wrapper plus a Kubernetes API client for local node status.

    `kubectl` is a full command prefix, e.g. the embedded cluster uses
    "sudo KUBECONFIG=/var/lib/embedded-cluster/k0s/pki/admin.conf
    /var/lib/embedded-cluster/bin/kubectl".
    """

    def __init__(self, kubectl: str = "kubectl", kubeconfig: Optional[str] = None, h: Optional[host.Host] = None):
        self._kubectl = shlex.split(kubectl)
        self._kubeconfig = kubeconfig
        self._host = h if h is not None else host.LocalHost()
        self._core_api: Optional[kubernetes.client.CoreV1Api] = None

    def _api(self) -> kubernetes.client.CoreV1Api:
        if self._core_api is None:
            if self._kubeconfig is not None:
                # The embedded kubeconfig is root-only, read it the way kubectl is run
                sudo = ["sudo"] if self._kubectl[0] == "sudo" else []
                ret = self._host.run(sudo + ["cat", self._kubeconfig])
                if not ret.success():
                    logger.error_and_exit(f"Failed to read kubeconfig {self._kubeconfig}: {ret.err.strip()}")
                api_client = kubernetes.config.new_client_from_config_dict(yaml.safe_load(ret.out))
            else:
                api_client = kubernetes.config.new_client_from_config()
            self._core_api = kubernetes.client.CoreV1Api(api_client)
        return self._core_api

    def kubectl(self, *args: str, must_succeed: bool = False) -> host.Result:
        cmd = self._kubectl + list(args)
        if must_succeed:
            return self._host.run_or_die(cmd)
        return self._host.run(cmd)

    def exists(self, kind: str, name: str, namespace: Optional[str] = None) -> bool:
        args = ["get", kind, name]
        if namespace:
            args += ["-n", namespace]
        return self.kubectl(*args).success()

    def names(self, kind: str, namespace: str) -> list[str]:
        ret = self.kubectl("get", kind, "-n", namespace, "-o", "name")
        if not ret.success():
            return []
        return [line.split("/", 1)[-1] for line in ret.out.splitlines() if line.strip()]

    def jsonpath(self, kind: str, name: str, namespace: str, expr: str) -> str:
        ret = self.kubectl("get", kind, name, "-n", namespace, "-o", f"jsonpath={expr}")
        return ret.out.strip() if ret.success() else ""

    def wait(self, target: str, condition: str, namespace: str, timeout: str = "300s", selector: Optional[str] = None) -> host.Result:
        args = ["wait", target, f"--for={condition}", "-n", namespace, f"--timeout={timer.kubectl_timeout(timeout)}"]
        if selector is not None:
            args += ["-l", selector]
        return self.kubectl(*args)

    def show(self, *args: str) -> None:
        # Diagnostic output only, failures are not interesting
        ret = self.kubectl(*args)
        for line in (ret.out or ret.err).rstrip().splitlines():
            logger.info(line)

    def _api_node_status(self) -> dict[str, bool]:
        status = {}
        try:
            nodes = self._api().list_node().items
        except (kubernetes.client.ApiException, urllib3.exceptions.HTTPError) as e:
            logger.error_and_exit(f"Failed to list nodes through the Kubernetes API: {e}")
            return {}
        for node in nodes:
            conditions = node.status.conditions or []
            status[node.metadata.name] = any(con.type == "Ready" and str(con.status) == "True" for con in conditions)
        return status

    def _kubectl_node_status(self) -> dict[str, bool]:
        ret = self.kubectl("get", "nodes", "-o", f"jsonpath={NODE_STATUS_JSONPATH}", must_succeed=True)
        status = {}
        for line in ret.out.splitlines():
            if not line.strip():
                continue
            name, _, ready = line.partition("\t")
            status[name.strip()] = ready.strip() == "True"
        return status

    def node_status(self) -> dict[str, bool]:
        # The API server address in the kubeconfig is only reachable from the host itself
        if self._host.is_localhost():
            return self._api_node_status()
        return self._kubectl_node_status()

    def get_nodes(self) -> list[str]:
        return list(self.node_status())

    def is_ready(self, name: str) -> bool:
        return self.node_status().get(name, False)

    def nodes_ready(self) -> bool:
        status = self.node_status()
        for n, ready in status.items():
            logger.info(f"node {n}: {'Ready' if ready else 'NotReady'}")
        return bool(status) and all(status.values())
