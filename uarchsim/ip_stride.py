"""Prefetcher that detects a constant stride per instruction address."""

from __future__ import annotations

from dataclasses import dataclass

from uarchsim.prefetch import CacheHost, NoPrefetcher

LOG2_BLOCK_SIZE = 6
LOG2_PAGE_SIZE = 12
PREFETCH_DEGREE = 3
TRACKER_SETS = 256
TRACKER_WAYS = 4

_MASK64 = (1 << 64) - 1


@dataclass
class TrackerEntry:
    ip: int = 0
    last_cl_addr: int = 0
    last_stride: int = 0
    last_used_cycle: int = 0


@dataclass
class Lookahead:
    address: int = 0
    stride: int = 0
    degree: int = 0


class IpStridePrefetcher(NoPrefetcher):
    """Tracks the last block and stride of each IP and, after two equal
    strides in a row, issues prefetches along that stride over later cycles.

    The host must also expose ``current_cycle``.
    """

    def __init__(self, host: CacheHost | None = None, name: str = "", virtual_prefetch: bool = False) -> None:
        super().__init__(host)
        self.name = name
        self.virtual_prefetch = virtual_prefetch
        self.lookahead = Lookahead()
        self.trackers = [TrackerEntry() for _ in range(TRACKER_SETS * TRACKER_WAYS)]

    def initialize(self) -> None:
        print(f"{self.name} IP-based stride prefetcher")

    def cycle_operate(self) -> None:
        old_address, stride, degree = self.lookahead.address, self.lookahead.stride, self.lookahead.degree
        if degree <= 0:
            return
        pf_address = (old_address + (stride << LOG2_BLOCK_SIZE)) & _MASK64
        if self.virtual_prefetch or (pf_address >> LOG2_PAGE_SIZE) == (old_address >> LOG2_PAGE_SIZE):
            fill_here = self.host.get_occupancy(0, pf_address) < self.host.get_size(0, pf_address) // 2
            if self.host.prefetch_line(0, 0, pf_address, fill_here, 0):
                self.lookahead = Lookahead(pf_address, stride, degree - 1)
            # on failure, retry next cycle
        else:
            self.lookahead = Lookahead()

    def cache_operate(self, addr, ip, cache_hit, access_type, metadata_in):
        cl_addr = addr >> LOG2_BLOCK_SIZE
        stride = 0

        start = ip % TRACKER_SETS
        ways = self.trackers[start:start + TRACKER_WAYS]

        found = next((e for e in ways if e.ip == ip), None)
        if found is not None:
            stride = cl_addr - found.last_cl_addr
            if stride != 0 and stride == found.last_stride:
                self.lookahead = Lookahead(cl_addr, stride, PREFETCH_DEGREE)
        else:
            found = min(ways, key=lambda e: e.last_used_cycle)

        found.ip = ip
        found.last_cl_addr = cl_addr
        found.last_stride = stride
        found.last_used_cycle = self.host.current_cycle
        return metadata_in

    def cache_fill(self, addr, set_index, way, prefetch, evicted_addr, metadata_in):
        return metadata_in

    def final_stats(self) -> dict[str, int]:
        """Return how many trackers hold an IP and the lookahead still pending."""
        return {
            "active_trackers": sum(1 for entry in self.trackers if entry.ip),
            "pending_degree": self.lookahead.degree,
        }