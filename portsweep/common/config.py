"""
Configuration settings for portsweep.

Scan settings are carried in an immutable ``ScanConfig`` value handed to the
engine. ``load_config`` builds one from environment variables (optionally
loaded from a .env file) plus explicit overrides from the command line.

Environment variables:
- PORTSWEEP_TIMEOUT: per-probe timeout in seconds
- PORTSWEEP_PORTS: port spec, e.g. "0-65535" or "22,80,443"
- PORTSWEEP_CONCURRENCY: explicit max in-flight probes, 0 uses the batch size
- PORTSWEEP_BATCH_SIZE: default max in-flight probes, lowered to fit the fd limit
- PORTSWEEP_ULIMIT: open file limit to request before scanning
- PORTSWEEP_RESOLVE: resolve hostnames once before probing (true/false)
"""

import logging
import os
from dataclasses import dataclass
from typing import Optional, Sequence

from dotenv import load_dotenv

from portsweep.common.logger import setup_logger
from portsweep.core.utils import MAX_PORT, MIN_PORT, parse_ports

setup_logger()
logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 1.0
DEFAULT_ULIMIT = 70000
# Concurrent connects one event loop completes well inside a 1s timeout.
DEFAULT_BATCH_SIZE = 1000

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off"}


@dataclass(frozen=True)
class ScanConfig:
    """
    Settings for a single scan.

    Attributes:
        timeout (float): Per-probe connect timeout in seconds
        ports (Sequence[int]): Ports to probe, stored sorted and unique
        concurrency (int): Explicit max probes in flight, 0 uses batch_size
        batch_size (int): Default max probes in flight, lowered to fit the fd limit
        ulimit (int): Open file limit requested before fanning out
        resolve (bool): Resolve hostnames once before the per-port loop
    """

    timeout: float = DEFAULT_TIMEOUT
    ports: Sequence[int] = range(MIN_PORT, MAX_PORT + 1)
    concurrency: int = 0
    batch_size: int = DEFAULT_BATCH_SIZE
    ulimit: int = DEFAULT_ULIMIT
    resolve: bool = True

    def __post_init__(self):
        if not self.timeout > 0:
            raise ValueError(f"timeout must be positive, got {self.timeout}")
        if self.concurrency < 0:
            raise ValueError(f"concurrency must be >= 0, got {self.concurrency}")
        if self.batch_size < 1:
            raise ValueError(f"batch_size must be >= 1, got {self.batch_size}")
        if self.ulimit < 1:
            raise ValueError(f"ulimit must be >= 1, got {self.ulimit}")

        if isinstance(self.ports, range) and self.ports.step == 1:
            ports = self.ports
            if len(ports) and (ports.start < MIN_PORT or ports.stop - 1 > MAX_PORT):
                raise ValueError(f"Port range out of bounds: {ports}")
        else:
            ports = tuple(sorted(set(self.ports)))
            for p in ports:
                if p < MIN_PORT or p > MAX_PORT:
                    raise ValueError(f"Invalid port: {p}")
        object.__setattr__(self, "ports", ports)


def debug_config(key, value):
    """Log configuration loading status."""
    status = "OK" if value is not None else "DEFAULT"
    logger.debug(f"[CONFIG] {key}: {status} ({value})")


def _env(key: str) -> Optional[str]:
    value = os.getenv(key)
    if value is not None:
        value = value.strip() or None
    debug_config(key, value)
    return value


def _parse_bool(key: str, value: str) -> bool:
    lowered = value.lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"{key} must be a boolean, got {value!r}")


def load_config(envfile: Optional[str] = None, **overrides) -> ScanConfig:
    """
    Build a ScanConfig from the environment and explicit overrides.

    Args:
        envfile: Optional .env file loaded before reading the environment
        **overrides: ScanConfig fields; values that are None are ignored

    Returns:
        ScanConfig: The validated configuration

    Raises:
        ValueError: If a value cannot be parsed or fails validation
    """
    if envfile:
        load_dotenv(envfile)

    values = {}

    timeout = _env("PORTSWEEP_TIMEOUT")
    if timeout is not None:
        try:
            values["timeout"] = float(timeout)
        except ValueError:
            raise ValueError(f"PORTSWEEP_TIMEOUT must be a number, got {timeout!r}") from None

    ports = _env("PORTSWEEP_PORTS")
    if ports is not None:
        values["ports"] = parse_ports(ports)

    for key, field in (
        ("PORTSWEEP_CONCURRENCY", "concurrency"),
        ("PORTSWEEP_BATCH_SIZE", "batch_size"),
        ("PORTSWEEP_ULIMIT", "ulimit"),
    ):
        raw = _env(key)
        if raw is not None:
            try:
                values[field] = int(raw)
            except ValueError:
                raise ValueError(f"{key} must be an integer, got {raw!r}") from None

    resolve = _env("PORTSWEEP_RESOLVE")
    if resolve is not None:
        values["resolve"] = _parse_bool("PORTSWEEP_RESOLVE", resolve)

    values.update({k: v for k, v in overrides.items() if v is not None})
    return ScanConfig(**values)
