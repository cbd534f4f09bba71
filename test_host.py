import pathlib
from typing import Iterator

import pytest

import host


@pytest.fixture
def lh() -> Iterator[host.Host]:
    # host.Host instances are cached and reused, start from a clean one
    host.host_instances.clear()
    h = host.LocalHost()
    yield h
    host.host_instances.clear()


def _run(h: host.Host, cmd: host.Command) -> tuple[int, str, str]:
    res = h.run(cmd)
    return res.returncode, res.out, res.err


def test_local_run(lh: host.Host) -> None:
    assert _run(lh, "echo hello") == (0, "hello\n", "")
    assert _run(lh, ["echo", "he > llo", "<", "'", "foo"]) == (0, "he > llo < ' foo\n", "")
    assert _run(lh, "sh -c 'echo -n out; echo -n err 1>&2; exit 7'") == (7, "out", "err")


def test_jsonpath_argument_survives_quoting(lh: host.Host) -> None:
    arg = "--for=jsonpath={.status.readyReplicas}=1"
    assert _run(lh, ["echo", arg]) == (0, arg + "\n", "")


def test_missing_binary(lh: host.Host) -> None:
    res = lh.run(["hvt-no-such-binary", "--version"])
    assert res.returncode == 127
    assert not res.success()


def test_run_or_die(lh: host.Host) -> None:
    assert lh.run_or_die("true").success()
    with pytest.raises(SystemExit):
        lh.run_or_die("false")


def test_instances_are_cached() -> None:
    host.host_instances.clear()
    assert host.LocalHost() is host.Host("localhost")
    assert host.RemoteHost("10.0.0.5") is not host.LocalHost()
    assert not host.RemoteHost("10.0.0.5").is_localhost()
    host.host_instances.clear()


def test_remote_requires_connection() -> None:
    host.host_instances.clear()
    with pytest.raises(RuntimeError):
        host.RemoteHost("10.0.0.5").run("true")
    host.host_instances.clear()


def test_read_file(lh: host.Host, tmp_path: pathlib.Path) -> None:
    path = tmp_path / "kubeconfig"
    path.write_text("apiVersion: v1\n")
    assert lh.read_file(str(path)) == "apiVersion: v1\n"


def test_result_str() -> None:
    assert str(host.Result("", "boom\n", 3)) == "(returncode: 3, error: boom)"
