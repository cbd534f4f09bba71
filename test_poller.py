import pytest

import host
import poller
from conftest import FakeHost, fail, ok
from k8sClient import K8sClient


class SimClock:
    """Virtual time: sleeping advances the clock, checks take `check_cost` seconds."""

    def __init__(self, check_cost: float = 0.0) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []
        self.check_cost = check_cost

    def clock(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


def _poll(sim: SimClock, timeout: float, check: poller.Check, interval: float = 5) -> bool:
    return poller.wait_for_resource_creation("test resources", timeout, check, interval, clock=sim.clock, sleep=sim.sleep)


def test_immediate_success_does_not_sleep() -> None:
    sim = SimClock()
    assert _poll(sim, 180, lambda: True)
    assert sim.sleeps == []


def test_success_after_some_polls() -> None:
    sim = SimClock()
    answers = iter([False, False, True])
    assert _poll(sim, 180, lambda: next(answers))
    assert sim.sleeps == [5, 5]


def test_timeout_returns_false_without_exiting() -> None:
    sim = SimClock()
    calls = []

    def never() -> bool:
        calls.append(sim.now)
        return False

    assert not _poll(sim, 20, never)
    assert calls == [0, 5, 10, 15]
    assert sim.now == 20


@pytest.mark.parametrize("timeout", [0, 1, 4, 5, 7, 30, 180])
@pytest.mark.parametrize("interval", [1, 3, 5, 15])
def test_terminates_within_timeout_plus_interval(timeout: float, interval: float) -> None:
    sim = SimClock()

    def slow_never() -> bool:
        sim.now += sim.check_cost
        return False

    _poll(sim, timeout, slow_never, interval)
    assert sim.now <= timeout + interval


def test_check_exception_counts_as_not_ready() -> None:
    sim = SimClock()
    answers = iter([RuntimeError("connection refused"), True])

    def flaky() -> bool:
        answer = next(answers)
        if isinstance(answer, Exception):
            raise answer
        return answer

    assert _poll(sim, 60, flaky)
    assert sim.sleeps == [5]


def test_resources_exist() -> None:
    present = {("deployment", "harbor-core"), ("statefulset", "harbor-database")}

    def responder(argv: list[str]) -> host.Result:
        assert argv[:2] == ["kubectl", "get"]
        assert argv[4:] == ["-n", "kotsadm"]
        return ok() if (argv[2], argv[3]) in present else fail("NotFound")

    fh = FakeHost(responder)
    client = K8sClient("kubectl", h=fh)  # type: ignore

    assert poller.resources_exist(client, "kotsadm", sorted(present))()
    assert not poller.resources_exist(client, "kotsadm", [("deployment", "harbor-core"), ("statefulset", "harbor-redis")])()
    # all() stops at the first missing resource
    fh.commands.clear()
    assert not poller.resources_exist(client, "kotsadm", [("statefulset", "harbor-redis"), ("deployment", "harbor-core")])()
    assert len(fh.commands) == 1


def test_resources_exist_with_sudo_prefix() -> None:
    fh = FakeHost()
    client = K8sClient("sudo KUBECONFIG=/var/lib/embedded-cluster/k0s/pki/admin.conf /var/lib/embedded-cluster/bin/kubectl", h=fh)  # type: ignore
    assert poller.resources_exist(client, "kotsadm", [("deployment", "cert-manager")])()
    assert fh.commands == [
        [
            "sudo",
            "KUBECONFIG=/var/lib/embedded-cluster/k0s/pki/admin.conf",
            "/var/lib/embedded-cluster/bin/kubectl",
            "get",
            "deployment",
            "cert-manager",
            "-n",
            "kotsadm",
        ]
    ]
