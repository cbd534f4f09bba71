import shlex
import sys
from typing import Callable, Optional

import pytest

import host
from k8sClient import K8sClient


Responder = Callable[[list[str]], host.Result]


def ok(out: str = "") -> host.Result:
    return host.Result(out, "", 0)


def fail(err: str = "error: timed out waiting for the condition") -> host.Result:
    return host.Result("", err, 1)


class FakeHost:
    """Stands in for host.Host, records every command instead of running it."""

    def __init__(self, responder: Optional[Responder] = None, remote: bool = False) -> None:
        self.commands: list[list[str]] = []
        self._responder = responder or (lambda argv: ok())
        self._remote = remote

    def is_localhost(self) -> bool:
        return not self._remote

    def run(self, cmd: host.Command, log_level: int = 10, quiet: bool = False) -> host.Result:
        argv = list(cmd) if isinstance(cmd, list) else shlex.split(cmd)
        self.commands.append(argv)
        return self._responder(argv)

    def run_or_die(self, cmd: host.Command, retry: int = 0) -> host.Result:
        ret = self.run(cmd)
        if not ret.success():
            sys.exit(-1)
        return ret

    def waits(self) -> list[str]:
        # "kubectl wait <target> ..." -> target, selector-based waits as "endpointslice:<svc>"
        out = []
        for argv in self.commands:
            if "wait" not in argv:
                continue
            target = argv[argv.index("wait") + 1]
            if "-l" in argv:
                target += ":" + argv[argv.index("-l") + 1].split("=", 1)[1]
            out.append(target)
        return out


@pytest.fixture
def fake_host() -> FakeHost:
    return FakeHost()


@pytest.fixture
def client(fake_host: FakeHost) -> K8sClient:
    return K8sClient("kubectl", h=fake_host)  # type: ignore
