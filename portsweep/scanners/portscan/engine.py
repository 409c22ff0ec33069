"""
Asynchronous TCP connect scan engine.

Every configured port of one target is probed with a plain TCP connect
bounded by a fixed timeout. Probes are scheduled on the event loop in
batches of ``batch_size`` concurrent connects and joined before the scan
returns, so a sweep takes a few timeout periods instead of one per closed
port.
"""

import asyncio
import logging
import socket
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional

import dns.asyncresolver
import dns.exception

from portsweep.common.config import ScanConfig
from portsweep.common.logger import setup_logger
from portsweep.core.utils import FD_RESERVE, descriptor_budget, is_ip_address


setup_logger()
logger = logging.getLogger(__name__)

RESOLVE_TIMEOUT = 5


class PortState(str, Enum):
    OPEN = "open"
    REFUSED = "refused"
    TIMED_OUT = "timed_out"
    ERROR = "error"


@dataclass(frozen=True)
class ProbeResult:
    """
    Outcome of a single probe.

    Attributes:
        port (int): The probed port
        state (PortState): How the connection attempt ended
        elapsed_s (float): Time spent on the attempt in seconds
        reason (Optional[str]): Error description for ERROR outcomes
    """

    port: int
    state: PortState
    elapsed_s: float
    reason: Optional[str] = None

    @property
    def is_open(self) -> bool:
        return self.state is PortState.OPEN


@dataclass
class ScanTarget:
    """
    A target as handed to the probes.

    Attributes:
        target (str): The address string supplied by the caller
        resolved_ips (List[str]): Addresses found by name resolution, in
            resolver order
        is_ip (bool): Flag indicating if the target is an IP literal
    """

    target: str
    resolved_ips: List[str] = field(default_factory=list)
    is_ip: bool = False

    @property
    def connect_addresses(self) -> List[str]:
        """Addresses each probe tries: every resolved IP, else the raw target."""
        return list(self.resolved_ips) if self.resolved_ips else [self.target]


class PortScanner:
    """
    Concurrent TCP connect scanner for a single target.

    Attributes:
        config (ScanConfig): Timeout, port set and concurrency settings
    """

    def __init__(self, config: Optional[ScanConfig] = None):
        self.config = config or ScanConfig()

    def _wanted_concurrency(self) -> int:
        port_count = max(len(self.config.ports), 1)
        if self.config.concurrency:
            return min(self.config.concurrency, port_count)
        return min(self.config.batch_size, port_count)

    def concurrency_limit(self, budget: Optional[int] = None, per_probe: int = 1) -> int:
        """
        Number of probes allowed in flight at once.

        An explicit ``config.concurrency`` wins. Otherwise ``batch_size`` is
        used, lowered further when the descriptor ``budget`` cannot hold that
        many probes of ``per_probe`` sockets each.
        """
        limit = self._wanted_concurrency()
        if budget is not None and not self.config.concurrency:
            limit = min(limit, (budget - FD_RESERVE) // max(per_probe, 1))
        return max(1, limit)

    async def _system_lookup(self, address: str) -> List[str]:
        """Resolve through getaddrinfo, which honours /etc/hosts and its ordering."""
        loop = asyncio.get_running_loop()
        try:
            infos = await asyncio.wait_for(
                loop.getaddrinfo(address, None, type=socket.SOCK_STREAM),
                timeout=RESOLVE_TIMEOUT,
            )
        except asyncio.TimeoutError:
            logger.debug(f"System lookup for {address} timed out")
            return []
        except (OSError, ValueError) as e:
            logger.debug(f"System lookup for {address} failed: {e!r}")
            return []

        ips = []
        for _, _, _, _, sockaddr in infos:
            if sockaddr[0] not in ips:
                ips.append(sockaddr[0])
        return ips

    async def _dns_lookup(self, address: str) -> List[str]:
        """Query A and AAAA records concurrently, bounded by RESOLVE_TIMEOUT."""
        try:
            resolver = dns.asyncresolver.Resolver()
        except dns.exception.DNSException as e:
            logger.warning(f"No usable DNS configuration: {e}")
            return []

        resolver.timeout = RESOLVE_TIMEOUT
        resolver.lifetime = RESOLVE_TIMEOUT

        async def query(rdtype):
            try:
                answers = await resolver.resolve(address, rdtype)
                return [str(rdata) for rdata in answers]
            except (dns.exception.DNSException, ValueError) as e:
                logger.debug(f"No {rdtype} records found for {address}: {e}")
                return []

        a_records, aaaa_records = await asyncio.gather(query("A"), query("AAAA"))
        return a_records + [ip for ip in aaaa_records if ip not in a_records]

    async def resolve_target(self, address: str) -> ScanTarget:
        """
        Resolve a target once before the per-port loop.

        IP literals are used as-is. Hostnames go through the system resolver
        first (hosts file, then whatever NSS is configured with); if it
        finds nothing, A and AAAA records are queried directly. A failed
        lookup is only reported; the probes then use the original string
        and simply fail if it cannot be resolved either.

        Args:
            address: The target address or hostname

        Returns:
            ScanTarget: Target with all of its resolved addresses
        """
        if is_ip_address(address):
            return ScanTarget(target=address, resolved_ips=[address], is_ip=True)

        ips = await self._system_lookup(address)
        if not ips:
            ips = await self._dns_lookup(address)

        if ips:
            logger.info(f"Resolved {address} to {', '.join(ips)}")
        else:
            logger.warning(
                f"Could not resolve {address}, probing it through the system resolver"
            )
        return ScanTarget(target=address, resolved_ips=ips)

    async def check_port(self, address: str, port: int) -> ProbeResult:
        """
        Try a TCP connection to ``(address, port)`` within the timeout.

        Every failure is caught and classified; nothing is raised to the
        caller except cancellation.

        Args:
            address: The address to connect to
            port: The port to probe

        Returns:
            ProbeResult: The classified outcome
        """
        start = time.perf_counter()
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(address, port), timeout=self.config.timeout
            )
        except asyncio.TimeoutError:
            return ProbeResult(port, PortState.TIMED_OUT, time.perf_counter() - start)
        except ConnectionRefusedError:
            return ProbeResult(port, PortState.REFUSED, time.perf_counter() - start)
        except (OSError, ValueError) as e:
            logger.debug(f"Probe {address}:{port} failed: {e!r}")
            return ProbeResult(
                port, PortState.ERROR, time.perf_counter() - start, reason=str(e) or repr(e)
            )

        elapsed = time.perf_counter() - start
        writer.close()
        try:
            await asyncio.wait_for(writer.wait_closed(), timeout=self.config.timeout)
        except (asyncio.TimeoutError, OSError) as e:
            logger.debug(f"Error closing connection to {address}:{port}: {e!r}")

        logger.info(f"Discovered open port {port}/tcp on {address}")
        return ProbeResult(port, PortState.OPEN, elapsed)

    async def probe_port(self, target: ScanTarget, port: int) -> ProbeResult:
        """
        Probe one port on every address of ``target``.

        The port is open if any address accepts the connection. Otherwise
        the outcome for the first address is reported.
        """
        addresses = target.connect_addresses
        if len(addresses) == 1:
            return await self.check_port(addresses[0], port)

        results = await asyncio.gather(*(self.check_port(a, port) for a in addresses))
        for result in results:
            if result.is_open:
                return result
        return results[0]

    async def probe_all(self, address: str) -> List[ProbeResult]:
        """
        Probe every configured port and return one outcome per port.

        The soft open file limit may be raised for the duration of the call
        and is restored before returning. Cancelling the awaiting task
        cancels every in-flight probe.

        Args:
            address: The target address or hostname

        Returns:
            List[ProbeResult]: Outcomes ordered by port
        """
        target = ScanTarget(target=address)
        if self.config.resolve:
            target = await self.resolve_target(address)

        per_probe = len(target.connect_addresses)
        wanted = self._wanted_concurrency() * per_probe + FD_RESERVE

        with descriptor_budget(min(self.config.ulimit, wanted)) as budget:
            limit = self.concurrency_limit(budget, per_probe)
            semaphore = asyncio.Semaphore(limit)

            logger.info(
                f"Starting scan for {address}: {len(self.config.ports)} ports, "
                f"timeout {self.config.timeout}s, {limit} concurrent probes"
            )

            async def bounded_probe(port: int) -> ProbeResult:
                async with semaphore:
                    return await self.probe_port(target, port)

            tasks = [bounded_probe(port) for port in self.config.ports]
            return list(await asyncio.gather(*tasks))

    async def scan(self, address: str) -> List[int]:
        """
        Scan all configured ports on ``address``.

        Args:
            address: The target address or hostname

        Returns:
            List[int]: Open ports in ascending order, empty if none were
            reachable (including when the target cannot be resolved)
        """
        start = time.perf_counter()
        results = await self.probe_all(address)
        open_ports = sorted(r.port for r in results if r.is_open)

        logger.info(
            f"Scan of {address} finished in {time.perf_counter() - start:.2f}s, "
            f"{len(open_ports)} open port(s)"
        )
        return open_ports


async def scan(address: str, config: Optional[ScanConfig] = None) -> List[int]:
    """
    Return the open TCP ports on ``address``.

    With no config every port from 0 to 65535 is probed with a one second
    timeout. The process's soft open file limit may be raised while the
    scan runs; the previous value is restored afterwards.
    """
    return await PortScanner(config).scan(address)
