"""
portsweep - TCP Connect Port Scanner

This is the command line entry point for portsweep. It loads the
environment, parses arguments, and runs a full-range asynchronous TCP
connect scan against a single target.

Usage:
    portsweep -t TARGET [-p PORTS] [--timeout SECONDS] [-o OUTPUT_DIR]

License:
    GNU General Public License v3.0
"""

#  *
#  * This file is part of portsweep.
#  *
#  * portsweep is free software: you can redistribute it and/or modify
#  * it under the terms of the GNU General Public License as published by
#  * the Free Software Foundation, either version 3 of the License, or
#  * (at your option) any later version.
#  *
#  * portsweep is distributed in the hope that it will be useful,
#  * but WITHOUT ANY WARRANTY; without even the implied warranty of
#  * MERCHANTABILITY or FITNESS FOR A PARTICULAR PURPOSE.  See the
#  * GNU General Public License for more details.
#  *
#  * You should have received a copy of the GNU General Public License
#  * along with portsweep. If not, see <https://www.gnu.org/licenses/>.
#  *

import argparse
import asyncio
import logging

from colorama import Fore, Style, init
from dotenv import load_dotenv

from portsweep.common.config import load_config
from portsweep.common.logger import set_verbosity, setup_logger
from portsweep.core.utils import parse_ports, prepare_output_directory
from portsweep.scanners.portscan import PortScanner, run


setup_logger()
logger = logging.getLogger("main")

init(autoreset=True)


def setup_env_from_args(args=None):
    # ? First, create a minimal argument parser just to grab the --envfile parameter.
    env_parser = argparse.ArgumentParser(add_help=False)
    env_parser.add_argument(
        "-env",
        "--envfile",
        help="envfile location, default .env",
        default=".env",
        required=False,
    )

    env_args, _ = env_parser.parse_known_args(args)

    # ? Load the env file early.
    load_dotenv(env_args.envfile)

    return env_args


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Asynchronous TCP connect scan of every port on a target"
    )
    parser.add_argument(
        "-t",
        "--target",
        required=True,
        help="IP address or hostname to scan",
    )
    parser.add_argument(
        "-p",
        "--ports",
        help="Port spec such as 0-65535 or 22,80,443 (default: all ports)",
    )
    parser.add_argument(
        "--timeout",
        type=float,
        help="Per-port connect timeout in seconds (default: 1.0)",
    )
    parser.add_argument(
        "-c",
        "--concurrent",
        type=int,
        help="Explicit maximum probes in flight, 0 uses the batch size",
    )
    parser.add_argument(
        "-b",
        "--batch-size",
        type=int,
        help="Probes in flight when no explicit limit is set (default: 1000)",
    )
    parser.add_argument(
        "-u",
        "--ulimit",
        type=int,
        help="Open file limit to request before scanning (default: 70000)",
    )
    parser.add_argument(
        "--no-resolve",
        action="store_true",
        help="Do not resolve hostnames before probing",
    )
    parser.add_argument("-o", "--output", help="Directory to save JSON results in")
    parser.add_argument(
        "-v", "--verbose", action="store_true", help="Enable debug logging"
    )
    parser.add_argument(
        "-env",
        "--envfile",
        help="envfile location, default .env",
        default=".env",
        required=False,
    )
    return parser


def main(args=None):
    """
    Parse arguments, run the scan and print the open ports.

    Args:
        args: Command line arguments (for testing)

    Returns:
        int: Process exit code
    """
    # Initialize environment variables
    setup_env_from_args(args)

    parser = build_parser()
    args = parser.parse_args(args)
    set_verbosity(args.verbose)

    try:
        config = load_config(
            timeout=args.timeout,
            ports=parse_ports(args.ports) if args.ports else None,
            concurrency=args.concurrent,
            batch_size=args.batch_size,
            ulimit=args.ulimit,
            resolve=False if args.no_resolve else None,
        )
    except ValueError as e:
        parser.error(str(e))

    # Banner
    logger.info(f"{Fore.BLUE}{'=' * 60}")
    logger.info(f"{Fore.CYAN}PORTSWEEP TCP CONNECT SCANNER")
    logger.info(
        f"{Fore.CYAN}Target: {Fore.YELLOW}{args.target}{Fore.CYAN} | Ports: {Fore.YELLOW}{len(config.ports)}{Fore.CYAN} | Timeout: {Fore.YELLOW}{config.timeout}s"
    )
    logger.info(f"{Fore.BLUE}{'=' * 60}{Style.RESET_ALL}")

    output_dir = None
    if args.output:
        output_dir = prepare_output_directory(args.target, base_dir=args.output)

    scanner = PortScanner(config)
    try:
        report = asyncio.run(run(scanner, args.target, output_dir))
    except KeyboardInterrupt:
        logger.warning(f"{Fore.RED}[-] Scan interrupted{Style.RESET_ALL}")
        return 130

    print(" ".join(str(p) for p in report["open_ports"]))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
