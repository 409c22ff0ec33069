"""
Port scanning functionality for portsweep.

Provides an asyncio TCP connect scanner that probes every port of a target
concurrently and reports the ones accepting connections.
"""

from portsweep.scanners.portscan.engine import (
    PortScanner,
    PortState,
    ProbeResult,
    ScanTarget,
    scan,
)
from portsweep.scanners.portscan.portscan_utils import (
    build_report,
    process_scan_results,
    run,
    save_results,
)

__all__ = [
    "PortScanner",
    "PortState",
    "ProbeResult",
    "ScanTarget",
    "scan",
    "build_report",
    "process_scan_results",
    "run",
    "save_results",
]
