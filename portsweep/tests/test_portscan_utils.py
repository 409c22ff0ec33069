import json
import os
import tempfile
import unittest
from unittest.mock import AsyncMock, MagicMock

from portsweep.common.config import ScanConfig
from portsweep.scanners.portscan.portscan_utils import (
    build_report,
    process_scan_results,
    run,
    save_results,
)


class TestBuildReport(unittest.TestCase):
    def test_full_range_report(self):
        report = build_report("127.0.0.1", [443, 22], ScanConfig(), 1.23456)

        self.assertEqual(report["target"], "127.0.0.1")
        self.assertEqual(report["open_ports"], [22, 443])
        self.assertEqual(report["ports_scanned"], 65536)
        self.assertEqual(report["port_spec"], "0-65535")
        self.assertEqual(report["timeout_s"], 1.0)
        self.assertEqual(report["elapsed_s"], 1.235)
        self.assertEqual(report["status"], "completed")

    def test_port_list_spec(self):
        report = build_report("host", [], ScanConfig(ports=[80, 22]), 0.1)
        self.assertEqual(report["port_spec"], "22,80")
        self.assertEqual(report["open_ports"], [])


class TestProcessScanResults(unittest.TestCase):
    def test_open_ports_logged(self):
        report = build_report("10.0.0.1", [22, 80], ScanConfig(), 1.0)
        with self.assertLogs("portsweep.scanners.portscan.portscan_utils", level="INFO") as logs:
            processed = process_scan_results(report)

        self.assertEqual(processed["ports_by_host"], {"10.0.0.1": ["22/tcp", "80/tcp"]})
        self.assertIn("22/tcp", logs.output[0])

    def test_no_open_ports_warns(self):
        report = build_report("10.0.0.1", [], ScanConfig(), 1.0)
        with self.assertLogs("portsweep.scanners.portscan.portscan_utils", level="WARNING"):
            processed = process_scan_results(report)

        self.assertEqual(processed["ports_by_host"], {})


class TestSaveAndRun(unittest.IsolatedAsyncioTestCase):
    async def asyncSetUp(self):
        self.tmp = tempfile.TemporaryDirectory()

    async def asyncTearDown(self):
        self.tmp.cleanup()

    async def test_save_results(self):
        """Reports are written as JSON with a metadata block."""
        report = build_report("10.0.0.1", [22], ScanConfig(ports=[22, 23]), 0.5)
        path = await save_results(report, self.tmp.name)

        self.assertTrue(path.startswith(self.tmp.name))
        self.assertIn("portsweep_10-0-0-1_", os.path.basename(path))
        with open(path) as f:
            data = json.load(f)
        self.assertEqual(data["metadata"]["target"], "10.0.0.1")
        self.assertEqual(data["metadata"]["filename"], path)
        self.assertEqual(data["results"]["open_ports"], [22])

    async def test_run_without_output(self):
        scanner = MagicMock()
        scanner.config = ScanConfig(ports=range(0, 100))
        scanner.scan = AsyncMock(return_value=[80, 22])

        report = await run(scanner, "10.0.0.1")

        scanner.scan.assert_awaited_once_with("10.0.0.1")
        self.assertEqual(report["open_ports"], [22, 80])
        self.assertEqual(report["ports_scanned"], 100)
        self.assertNotIn("file_path", report)

    async def test_run_saves_report(self):
        scanner = MagicMock()
        scanner.config = ScanConfig(ports=[22])
        scanner.scan = AsyncMock(return_value=[])

        report = await run(scanner, "10.0.0.1", output_dir=self.tmp.name)

        self.assertTrue(os.path.exists(report["file_path"]))


if __name__ == "__main__":
    unittest.main()
