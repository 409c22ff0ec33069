"""
Result handling for portsweep scans.
"""

import json
import logging
import os
import time
from datetime import datetime
from typing import Dict, List, Optional

from colorama import Fore, Style

from portsweep.common.config import ScanConfig
from portsweep.common.logger import setup_logger
from portsweep.core.utils import ensure_directory_exists, safe_target_name
from portsweep.scanners.portscan.engine import PortScanner


setup_logger()
logger = logging.getLogger(__name__)


def _describe_ports(ports) -> str:
    if isinstance(ports, range) and len(ports):
        return f"{ports.start}-{ports.stop - 1}"
    return ",".join(str(p) for p in ports)


def build_report(
    target: str, open_ports: List[int], config: ScanConfig, elapsed_s: float
) -> Dict:
    """
    Assemble the serializable summary of one scan.

    Args:
        target: The scanned address
        open_ports: Open ports found by the scan
        config: The configuration the scan ran with
        elapsed_s: Wall-clock duration of the scan

    Returns:
        Dict: The scan report
    """
    return {
        "timestamp": datetime.now().isoformat(),
        "target": target,
        "protocol": "tcp",
        "ports_scanned": len(config.ports),
        "port_spec": _describe_ports(config.ports),
        "timeout_s": config.timeout,
        "elapsed_s": round(elapsed_s, 3),
        "open_ports": sorted(open_ports),
        "status": "completed",
    }


async def save_results(report: Dict, output_dir: Optional[str] = None) -> str:
    """
    Save a scan report to a JSON file.

    Args:
        report: Report produced by build_report
        output_dir: Directory to save results (defaults to scan_results)

    Returns:
        str: Path of the written file
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    if not output_dir:
        output_dir = "scan_results"
    ensure_directory_exists(output_dir)

    output_file = os.path.join(
        output_dir, f"portsweep_{safe_target_name(report['target'])}_{timestamp}.json"
    )
    data = {
        "metadata": {
            "timestamp": datetime.now().isoformat(),
            "filename": output_file,
            "target": report["target"],
        },
        "results": report,
    }

    with open(output_file, "w") as f:
        json.dump(data, f, indent=2)

    logger.info(f"Scan results for {report['target']} saved to {output_file}")
    return output_file


def process_scan_results(report: Dict) -> Dict:
    """
    Log the open ports of a report.

    Args:
        report: Report produced by build_report

    Returns:
        dict: Open ports formatted as "port/tcp", keyed by target
    """
    processed = {"ports_by_host": {}}
    ports = report.get("open_ports") or []

    if ports:
        port_info = [f"{p}/tcp" for p in ports]
        processed["ports_by_host"][report["target"]] = port_info
        logger.info(
            f"{Fore.GREEN}Found open ports on {Fore.YELLOW}{report['target']}{Fore.GREEN}: {Fore.CYAN}{', '.join(port_info)}{Style.RESET_ALL}"
        )
    else:
        logger.warning(f"[!] No open ports were found on {report['target']}.")

    return processed


async def run(
    scanner: PortScanner, target: str, output_dir: Optional[str] = None
) -> Dict:
    """
    Scan a target, log the findings and optionally save them.

    Args:
        scanner: PortScanner instance
        target: The address to scan
        output_dir: Save the report as JSON here when given

    Returns:
        Dict: The scan report, with "file_path" set when it was saved
    """
    start = time.perf_counter()
    open_ports = await scanner.scan(target)
    report = build_report(target, open_ports, scanner.config, time.perf_counter() - start)

    process_scan_results(report)

    if output_dir:
        report["file_path"] = await save_results(report, output_dir)

    return report
