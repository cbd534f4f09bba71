import argparse

import pytest

import arguments


def test_verify_args() -> None:
    args = arguments.parse_args(["verify", "embedded", "--hostname", "harbor.example.com", "--skip-ui"])
    assert args.subcommand == "verify"
    assert args.flavour == "embedded"
    assert args.hostname == "harbor.example.com"
    assert args.skip_ui
    assert not args.no_sdk
    assert args.config is None


def test_invalid_flavour_suggests(capsys: pytest.CaptureFixture[str]) -> None:
    with pytest.raises(SystemExit):
        arguments.parse_args(["verify", "embeded"])
    assert "Did you mean 'embedded'?" in capsys.readouterr().out


def test_invalid_component() -> None:
    with pytest.raises(SystemExit):
        arguments.parse_args(["component", "postgres", "-n", "kotsadm"])


def test_missing_subcommand() -> None:
    with pytest.raises(SystemExit):
        arguments.parse_args([])


def test_wait_created_targets() -> None:
    args = arguments.parse_args(["--kubectl", "k0s kubectl", "wait-created", "NGINX resources", "deployment/ingress-nginx-controller", "-n", "kotsadm"])
    assert args.kubectl == "k0s kubectl"
    assert args.stage == "NGINX resources"
    assert args.targets == [("deployment", "ingress-nginx-controller")]
    assert args.timeout == 180
    assert args.interval == 5


def test_wait_created_bad_target() -> None:
    with pytest.raises(SystemExit):
        arguments.parse_args(["wait-created", "stage", "harbor-core", "-n", "kotsadm"])
    with pytest.raises(argparse.ArgumentTypeError):
        arguments._parse_target("deployment/")


def test_network_report_allowlist() -> None:
    args = arguments.parse_args(["network-report", "abc123", "--allow", "a.example.com", "--allow", "b.example.com"])
    assert args.network_id == "abc123"
    assert args.allow == ["a.example.com", "b.example.com"]
    assert arguments.parse_args(["network-report", "abc123"]).allow is None


def test_missing_config_file() -> None:
    with pytest.raises(SystemExit):
        arguments.parse_args(["--config", "/nonexistent/hvt.yaml", "verify", "kots"])


def test_fuzzy_match() -> None:
    assert arguments.fuzzy_match("helmm", ["kots", "helm"]) == "helm"
    assert arguments.fuzzy_match("zzz", ["kots", "helm"]) is None
