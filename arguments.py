import argparse
import difflib
import logging
import os
import sys
from typing import Optional, Sequence

import argcomplete

import components
import hvtConfig
from logger import configure_logger, logger


def yaml_completer(prefix: str, parsed_args: str, **kwargs: str) -> list[str]:
    return [f for f in os.listdir('.') if f.endswith(('.yaml', '.yml')) and f.startswith(prefix)]


def fuzzy_match(value: str, choices: Sequence[str]) -> Optional[str]:
    matches = difflib.get_close_matches(value, choices, n=1, cutoff=0.5)
    return matches[0] if matches else None


def _check_choice(kind: str, value: str, choices: Sequence[str]) -> None:
    if value in choices:
        return
    suggestion = fuzzy_match(value, choices)
    message = f"Invalid {kind}: '{value}'"
    message += f" Did you mean '{suggestion}'?" if suggestion else f" Expected one of: {', '.join(choices)}"
    logger.error(message)
    sys.exit(-1)


def _parse_target(value: str) -> tuple[str, str]:
    kind, sep, name = value.partition("/")
    if not sep or not kind or not name:
        raise argparse.ArgumentTypeError(f"'{value}' is not of the form kind/name")
    return kind, name


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description='Harbor installation verification')
    parser.add_argument('-v', '--verbosity', choices=['debug', 'info', 'warning', 'error', 'critical'], default=None, help='Set the logging level (default: info, or HVT_LOG_LEVEL)')
    parser.add_argument('--config', dest='config', default=None, type=str, help='Yaml file overriding the flavour defaults').completer = yaml_completer  # type: ignore
    parser.add_argument('--kubectl', dest='kubectl', default=None, type=str, help='kubectl command prefix (default depends on the flavour)')
    parser.add_argument('--kubeconfig', dest='kubeconfig', default=None, type=str, help='kubeconfig used for node status')
    parser.add_argument('--ssh-host', dest='ssh_host', default=None, type=str, help='Run all commands on this host over SSH')
    parser.add_argument('--ssh-user', dest='ssh_user', default=None, type=str, help='SSH user (default: root)')

    subparsers = parser.add_subparsers(title='subcommands', dest='subcommand')

    verify_parser = subparsers.add_parser('verify', help='Verify an installation end to end')
    verify_parser.add_argument('flavour', type=str, help=f"Install flavour: {', '.join(hvtConfig.FLAVOURS)}")
    verify_parser.add_argument('--hostname', type=str, default=None, help='Hostname Harbor is served on (default: $HOSTNAME)')
    verify_parser.add_argument('--url', type=str, default=None, help='URL to probe for the Harbor UI')
    verify_parser.add_argument('--skip-ui', dest='skip_ui', action='store_true', help='Do not probe the Harbor UI')
    verify_parser.add_argument('--no-sdk', dest='no_sdk', action='store_true', help='The Replicated SDK is not part of the install')
    verify_parser.add_argument('--legacy-endpoints', dest='legacy_endpoints', action='store_true', help='Check Endpoints instead of EndpointSlices')

    component_parser = subparsers.add_parser('component', help='Verify a single component')
    component_parser.add_argument('name', type=str, help=f"One of: {', '.join(components.COMPONENT_NAMES)}")
    component_parser.add_argument('-n', '--namespace', type=str, required=True, help='Namespace of the component')
    component_parser.add_argument('--creation-timeout', dest='creation_timeout', type=int, default=None, help='Poll this many seconds for the resources to be created first')
    component_parser.add_argument('--no-sdk', dest='no_sdk', action='store_true', help='The Replicated SDK is not part of the install')
    component_parser.add_argument('--legacy-endpoints', dest='legacy_endpoints', action='store_true', help='Check Endpoints instead of EndpointSlices')

    created_parser = subparsers.add_parser('wait-created', help='Poll until resources exist')
    created_parser.add_argument('stage', type=str, help='Name of the stage, for logging')
    created_parser.add_argument('targets', nargs='+', type=_parse_target, help='Resources as kind/name')
    created_parser.add_argument('-n', '--namespace', type=str, required=True, help='Namespace of the resources')
    created_parser.add_argument('--timeout', type=int, default=180, help='Seconds to poll (default: 180)')
    created_parser.add_argument('--interval', type=int, default=5, help='Seconds between checks (default: 5)')

    report_parser = subparsers.add_parser('network-report', help='Validate the domains contacted during a test')
    report_parser.add_argument('network_id', type=str, help='Network ID of the test environment')
    report_parser.add_argument('--allow', dest='allow', action='append', default=None, help='Allowed domain, may be repeated (replaces the default allowlist)')

    argcomplete.autocomplete(parser)
    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    args = build_parser().parse_args(argv)

    if args.verbosity is not None:
        configure_logger(getattr(logging, args.verbosity.upper()))

    if not args.subcommand:
        logger.error_and_exit("No subcommand: select one of verify, component, wait-created or network-report")

    if args.subcommand == "verify":
        _check_choice("flavour", args.flavour, hvtConfig.FLAVOURS)
    elif args.subcommand == "component":
        _check_choice("component", args.name, components.COMPONENT_NAMES)

    if args.config is not None and not os.path.exists(args.config):
        logger.error_and_exit(f"Missing config file at {args.config}")
    return args
