import os
import tempfile
import unittest
from unittest.mock import MagicMock, call, patch

from portsweep.core.utils import (
    FALLBACK_FD_BUDGET,
    descriptor_budget,
    is_ip_address,
    is_valid_ipv4,
    is_valid_ipv6,
    parse_ports,
    prepare_output_directory,
    safe_target_name,
)


class TestParsePorts(unittest.TestCase):
    """Test port specification parsing."""

    def test_single_port(self):
        self.assertEqual(parse_ports("80"), [80])

    def test_range_includes_zero(self):
        self.assertEqual(parse_ports("0-3"), [0, 1, 2, 3])

    def test_full_range(self):
        self.assertEqual(len(parse_ports("0-65535")), 65536)

    def test_mixed_spec_sorted_and_unique(self):
        """Mixed specs are merged, sorted and de-duplicated."""
        self.assertEqual(parse_ports(" 443, 22,80-82,81 ,"), [22, 80, 81, 82, 443])

    def test_invalid_specs(self):
        for spec in ("", "   ", ",", "abc", "80-", "90-80", "65536", "-1", "1-70000"):
            with self.subTest(spec=spec):
                with self.assertRaises(ValueError):
                    parse_ports(spec)


class TestAddressHelpers(unittest.TestCase):
    def test_ip_validation(self):
        self.assertTrue(is_valid_ipv4("127.0.0.1"))
        self.assertFalse(is_valid_ipv4("::1"))
        self.assertTrue(is_valid_ipv6("::1"))
        self.assertFalse(is_valid_ipv6("localhost"))
        self.assertTrue(is_ip_address("10.0.0.1"))
        self.assertFalse(is_ip_address("example.com"))

    def test_safe_target_name(self):
        self.assertEqual(safe_target_name("10.0.0.1"), "10-0-0-1")
        self.assertEqual(safe_target_name("fe80::1"), "fe80__1")
        self.assertEqual(safe_target_name(""), "target")

    def test_prepare_output_directory(self):
        with tempfile.TemporaryDirectory() as tmp:
            path = prepare_output_directory("example.com", base_dir=tmp)
            self.assertEqual(path, os.path.join(tmp, "example-com"))
            self.assertTrue(os.path.isdir(path))


class TestDescriptorBudget(unittest.TestCase):
    """Test raising the open file limit around a scan."""

    def _resource(self, soft, hard):
        mock_resource = MagicMock()
        mock_resource.RLIM_INFINITY = -1
        mock_resource.getrlimit.return_value = (soft, hard)
        return mock_resource

    def test_raises_soft_limit_then_restores_it(self):
        """The raised limit only holds inside the block."""
        mock_resource = self._resource(1024, 4096)
        with patch("portsweep.core.utils.resource", mock_resource):
            with descriptor_budget(70000) as budget:
                self.assertEqual(budget, 4096)
                mock_resource.setrlimit.assert_called_once_with(
                    mock_resource.RLIMIT_NOFILE, (4096, 4096)
                )

        self.assertEqual(
            mock_resource.setrlimit.call_args_list[-1],
            call(mock_resource.RLIMIT_NOFILE, (1024, 4096)),
        )
        self.assertEqual(mock_resource.setrlimit.call_count, 2)

    def test_restored_when_block_raises(self):
        mock_resource = self._resource(1024, 4096)
        with patch("portsweep.core.utils.resource", mock_resource):
            with self.assertRaises(RuntimeError):
                with descriptor_budget(2000):
                    raise RuntimeError("scan failed")

        self.assertEqual(
            mock_resource.setrlimit.call_args_list,
            [
                call(mock_resource.RLIMIT_NOFILE, (2000, 4096)),
                call(mock_resource.RLIMIT_NOFILE, (1024, 4096)),
            ],
        )

    def test_unlimited_hard_limit(self):
        mock_resource = self._resource(1024, -1)
        with patch("portsweep.core.utils.resource", mock_resource):
            with descriptor_budget(70000) as budget:
                self.assertEqual(budget, 70000)

    def test_sufficient_limit_left_alone(self):
        mock_resource = self._resource(100000, 100000)
        with patch("portsweep.core.utils.resource", mock_resource):
            with descriptor_budget(1064) as budget:
                self.assertEqual(budget, 100000)

        mock_resource.setrlimit.assert_not_called()

    def test_failure_keeps_current_limit(self):
        """A refused setrlimit is logged, the current limit is used and nothing is restored."""
        mock_resource = self._resource(1024, 4096)
        mock_resource.setrlimit.side_effect = ValueError("not allowed")
        with patch("portsweep.core.utils.resource", mock_resource):
            with self.assertLogs("portsweep.core.utils", level="WARNING"):
                with descriptor_budget(70000) as budget:
                    self.assertEqual(budget, 1024)

        mock_resource.setrlimit.assert_called_once()

    def test_without_resource_module(self):
        with patch("portsweep.core.utils.resource", None):
            with descriptor_budget(70000) as budget:
                self.assertEqual(budget, FALLBACK_FD_BUDGET)


if __name__ == "__main__":
    unittest.main()
