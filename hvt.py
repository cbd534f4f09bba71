#!/usr/bin/env python3

# PYTHON_ARGCOMPLETE_OK
import argparse
import sys
from typing import Optional, Sequence

import common
import components
import host
import hvtConfig
import networkReport
import poller
import readiness
from arguments import parse_args
from hvtConfig import HvtConfig
from k8sClient import K8sClient
from logger import logger
from verifier import InstallVerifier


def load_config(args: argparse.Namespace, flavour: Optional[str] = None) -> HvtConfig:
    base = None
    if args.config is not None:
        if not common.is_yaml(args.config):
            logger.error_and_exit("Please specify a yaml configuration file")
        base = hvtConfig.load(args.config)
    cc = hvtConfig.profile(flavour, base) if flavour is not None else (base or HvtConfig())
    return cc.with_overrides(kubectl=args.kubectl, kubeconfig=args.kubeconfig, ssh_host=args.ssh_host, ssh_user=args.ssh_user)


def target_host(cc: HvtConfig) -> host.Host:
    if cc.ssh_host is None:
        return host.LocalHost()
    h = host.RemoteHost(cc.ssh_host)
    h.ssh_connect(cc.ssh_user)
    return h


def main_verify(args: argparse.Namespace) -> None:
    cc = load_config(args, args.flavour)
    if args.no_sdk:
        cc = cc.with_overrides(include_sdk=False)
    if args.legacy_endpoints:
        cc = cc.with_overrides(use_endpoint_slices=False)
    client = K8sClient(cc.kubectl, cc.kubeconfig, target_host(cc))
    InstallVerifier(client, cc).verify(args.flavour, hostname=args.hostname, url=args.url, skip_ui=args.skip_ui)


def main_component(args: argparse.Namespace) -> None:
    cc = load_config(args)
    client = K8sClient(cc.kubectl, cc.kubeconfig, target_host(cc))
    component = components.by_name(args.name, include_sdk=not args.no_sdk)
    readiness.verify_component(
        client,
        component,
        args.namespace,
        timeout=cc.wait_timeout,
        use_endpoint_slices=cc.use_endpoint_slices and not args.legacy_endpoints,
        creation_timeout=args.creation_timeout,
        poll_interval=cc.poll_interval,
    )


def main_wait_created(args: argparse.Namespace) -> None:
    cc = load_config(args)
    client = K8sClient(cc.kubectl, cc.kubeconfig, target_host(cc))
    check = poller.resources_exist(client, args.namespace, args.targets)
    # Not finding the resources is not an error, kubectl wait will report it
    poller.wait_for_resource_creation(args.stage, args.timeout, check, args.interval)


def main_network_report(args: argparse.Namespace) -> None:
    cc = load_config(args)
    allowlist = args.allow if args.allow else list(cc.allowed_domains)
    # The report comes from the vendor API, always query it from here
    if not networkReport.validate_network_report(args.network_id, allowlist, host.LocalHost(), cc.report_retries, cc.report_delay):
        sys.exit(1)


def main(argv: Optional[Sequence[str]] = None) -> None:
    args = parse_args(argv)

    if args.subcommand == "verify":
        main_verify(args)
    elif args.subcommand == "component":
        main_component(args)
    elif args.subcommand == "wait-created":
        main_wait_created(args)
    elif args.subcommand == "network-report":
        main_network_report(args)


if __name__ == "__main__":
    main()
