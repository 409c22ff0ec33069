"""portsweep: asynchronous TCP connect port scanner."""

from portsweep.common.config import ScanConfig, load_config
from portsweep.scanners.portscan.engine import PortScanner, PortState, ProbeResult, scan

__version__ = "0.1.0"

__all__ = ["PortScanner", "PortState", "ProbeResult", "ScanConfig", "load_config", "scan"]
