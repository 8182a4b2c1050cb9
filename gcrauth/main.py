import argparse
import json
import logging
import sys

import requests

from .configuration import Configuration, ConfigurationError
from .hosts import HostMatcher, InvalidPatternError, registry_host
from .metadata import MetadataClient, HttpFetchError, MetadataParseError

PRE_SPACE = 0
# Message of docker-credential-helpers when nothing is stored for server
CREDENTIALS_NOT_FOUND = "credentials not found in native keychain"
UNSUPPORTED_ACTIONS = ["store", "erase", "list"]

logger = logging.getLogger("gcrauth")


def create_head_argparse() -> argparse.ArgumentParser:
    m_parser = argparse.ArgumentParser(
        prog="docker-credential-gcrauth",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        description="Docker credential helper for Google Container Registry, "
                    "uses access token from the instance metadata service.",
    )
    m_parser.add_argument(
        "-l",
        "--log",
        dest="log_level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Set the logging level",
        default=None,
    )
    m_parser.add_argument("-q", "--quiet", action="store_true", help="Be quite quiet")
    m_parser.add_argument(
        "--config", help="Override filepath for configuration file.",
    )
    subparsers = m_parser.add_subparsers(dest="sub_command")
    create_get_argparse(subparsers)
    create_check_argparse(subparsers)
    create_token_argparse(subparsers)
    for action in UNSUPPORTED_ACTIONS:
        subparsers.add_parser(action, help="Not supported, credentials are never stored.")
    return m_parser


def create_get_argparse(subparsers: argparse._SubParsersAction):
    subparsers.add_parser(
        "get",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        help="Credential helper protocol: read server URL from stdin, print credentials as JSON.",
    )


def create_check_argparse(subparsers: argparse._SubParsersAction):
    check_parser = subparsers.add_parser(
        "check",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        help="Tell whether GCR credentials are used for the host.",
    )
    check_parser.add_argument("host", help="Registry host name or server URL.")


def create_token_argparse(subparsers: argparse._SubParsersAction):
    subparsers.add_parser(
        "token",
        formatter_class=argparse.ArgumentDefaultsHelpFormatter,
        help="Print access token of the default service account.",
    )


def get_handler(args, config: Configuration, matcher: HostMatcher = None, stdin=None):
    server_url = (stdin or sys.stdin).read().strip()
    host = registry_host(server_url)
    if not (matcher or HostMatcher(config.registry_hosts)).matches(host):
        logger.debug(f"Not a Google Container Registry host: '{host}'")
        print(CREDENTIALS_NOT_FOUND)
        sys.exit(1)
    with MetadataClient(config) as client:
        try:
            creds = client.fetch_gcr_credentials(server_url)
        except (HttpFetchError, MetadataParseError, requests.RequestException) as e:
            logger.error(f"Failed to get credentials for {host}: {e}")
            sys.exit(1)
    print(json.dumps(creds.to_helper_output()))


def check_handler(args, config: Configuration, matcher: HostMatcher = None):
    match = (matcher or HostMatcher(config.registry_hosts)).matches(registry_host(args.host))
    print("true" if match else "false")
    sys.exit(0 if match else 1)


def token_handler(args, config: Configuration):
    with MetadataClient(config) as client:
        try:
            print(client.fetch_access_token())
        except (HttpFetchError, MetadataParseError, requests.RequestException) as e:
            logger.error(f"Failed to get access token: {e}")
            sys.exit(1)


def main(argv=None):
    m_parser = create_head_argparse()
    argv = sys.argv[1:] if argv is None else argv
    args = m_parser.parse_args(args=argv)

    sub_command = args.sub_command
    log_level = (
        args.log_level if args.log_level else ("WARNING" if args.quiet else "INFO")
    )
    if log_level not in {"DEBUG"}:
        sys.tracebacklimit = 0  # avoid track traces unless debugging
    logging.basicConfig(
        format=f"{' ':<{PRE_SPACE}}%(levelname)s - %(name)s: %(message)s",
        level=getattr(logging, log_level),
    )

    if not sub_command:
        m_parser.print_help()
        sys.exit(1)
    elif sub_command in UNSUPPORTED_ACTIONS:
        logger.error(f"Action '{sub_command}' is not supported.")
        sys.exit(1)

    try:
        config = Configuration(args.config or "")
        matcher = HostMatcher(config.registry_hosts)
    except (ConfigurationError, InvalidPatternError) as e:
        logger.error(f"Invalid configuration: {e}")
        sys.exit(1)

    if sub_command == "get":
        get_handler(args, config, matcher)
    elif sub_command == "check":
        check_handler(args, config, matcher)
    elif sub_command == "token":
        token_handler(args, config)
