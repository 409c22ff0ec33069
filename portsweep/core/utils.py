"""
General utility functions for portsweep.

This module provides helpers used throughout the scanner, such as port
specification parsing, address validation, output directory handling and
file descriptor budgeting for large connection fan-outs.
"""

import ipaddress
import logging
import os
import re
from contextlib import contextmanager
from typing import Iterator, List

from portsweep.common.logger import setup_logger

try:
    import resource
except ImportError:  # Windows
    resource = None

setup_logger()
logger = logging.getLogger(__name__)

MIN_PORT = 0
MAX_PORT = 65535

# Descriptors kept back for the event loop, logging and stdio.
FD_RESERVE = 64
FALLBACK_FD_BUDGET = 512


def parse_ports(spec: str) -> List[int]:
    """
    Parse a port specification string into a sorted list of unique ports.

    Supports:
    - Single ports: "80"
    - Ranges: "0-1024"
    - Comma-separated: "22,80,443"
    - Mixed: "1-1024,8080,9000-9005"

    Args:
        spec: The port specification

    Returns:
        List[int]: Sorted, de-duplicated ports

    Raises:
        ValueError: If the spec is empty or contains an invalid port/range
    """
    spec = spec.strip()
    if not spec:
        raise ValueError("Empty port spec")

    ports = set()
    for part in spec.split(","):
        part = part.strip()
        if not part:
            continue
        if "-" in part:
            start_s, end_s = part.split("-", 1)
            try:
                start = int(start_s)
                end = int(end_s)
            except ValueError:
                raise ValueError(f"Invalid port range: {part}") from None
            if start < MIN_PORT or end > MAX_PORT or start > end:
                raise ValueError(f"Invalid port range: {part}")
            ports.update(range(start, end + 1))
        else:
            try:
                p = int(part)
            except ValueError:
                raise ValueError(f"Invalid port: {part}") from None
            if p < MIN_PORT or p > MAX_PORT:
                raise ValueError(f"Invalid port: {p}")
            ports.add(p)

    if not ports:
        raise ValueError(f"No ports in spec: {spec!r}")

    return sorted(ports)


def is_valid_ipv4(ip: str) -> bool:
    """Check if string is a valid IPv4 address."""
    try:
        ipaddress.IPv4Address(ip)
        return True
    except ValueError:
        return False


def is_valid_ipv6(ip: str) -> bool:
    """Check if string is a valid IPv6 address."""
    try:
        ipaddress.IPv6Address(ip)
        return True
    except ValueError:
        return False


def is_ip_address(ip: str) -> bool:
    return is_valid_ipv4(ip) or is_valid_ipv6(ip)


def ensure_directory_exists(path: str) -> None:
    """
    Ensure a directory exists, creating it if necessary.

    Args:
        path: Path to the directory
    """
    os.makedirs(path, exist_ok=True)


def safe_target_name(target: str) -> str:
    """Turn a target into something usable in a file name."""
    return re.sub(r"[^A-Za-z0-9_-]", "_", target.replace(".", "-")) or "target"


def prepare_output_directory(target: str, base_dir: str = "scan_results") -> str:
    """
    Prepare and create an output directory for scan results.

    Args:
        target: The scanned address, used as the sub-directory name
        base_dir: Root directory for all results

    Returns:
        str: Path to the created output directory
    """
    output_dir = os.path.join(base_dir, safe_target_name(target))
    ensure_directory_exists(output_dir)
    return output_dir


@contextmanager
def descriptor_budget(ulimit: int) -> Iterator[int]:
    """
    Raise the soft RLIMIT_NOFILE toward ``ulimit`` for the duration of a block.

    The soft limit is never raised above the hard limit. A failure to raise it
    is logged and the current soft limit is used instead. The previous soft
    limit is restored on exit; the limit is process-wide, so overlapping
    scans in one process share it.

    Args:
        ulimit: Desired number of open file descriptors

    Yields:
        int: The soft descriptor limit in effect inside the block
    """
    if resource is None:
        yield FALLBACK_FD_BUDGET
        return

    soft, hard = resource.getrlimit(resource.RLIMIT_NOFILE)
    target = ulimit if hard == resource.RLIM_INFINITY else min(ulimit, hard)
    effective = ulimit if soft == resource.RLIM_INFINITY else soft
    raised = False

    if soft != resource.RLIM_INFINITY and soft < target:
        try:
            resource.setrlimit(resource.RLIMIT_NOFILE, (target, hard))
            logger.debug(f"Raised open file limit from {soft} to {target}")
            effective = target
            raised = True
        except (ValueError, OSError) as e:
            logger.warning(f"Could not raise open file limit to {target}: {e}")

    try:
        yield effective
    finally:
        if raised:
            try:
                resource.setrlimit(resource.RLIMIT_NOFILE, (soft, hard))
                logger.debug(f"Restored open file limit to {soft}")
            except (ValueError, OSError) as e:
                logger.warning(f"Could not restore open file limit to {soft}: {e}")
