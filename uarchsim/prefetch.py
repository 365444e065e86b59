"""Interfaces a prefetcher talks to, and prefetchers that never prefetch."""

from __future__ import annotations

import enum
from collections import Counter
from typing import Protocol


class FillLevel(enum.IntEnum):
    """Cache level a prefetched line is filled into."""

    L1 = 1
    L2 = 2
    LLC = 4


class CacheHost(Protocol):
    """The cache a data prefetcher is attached to."""

    def prefetch_line(self, ip, base_addr, pf_addr, fill_this_level, metadata) -> bool:
        """Request a prefetch of ``pf_addr``; return True if it was accepted."""

    def get_occupancy(self, queue_type, address) -> int:
        """Return the number of occupied entries in the given queue."""

    def get_size(self, queue_type, address) -> int:
        """Return the capacity of the given queue."""


class InstructionHost(Protocol):
    """The core an instruction prefetcher is attached to."""

    def prefetch_code_line(self, pf_v_addr) -> bool:
        """Request a prefetch of the code line at ``pf_v_addr``."""


class NoPrefetcher:
    """Data prefetcher that issues no prefetches.

    It only counts the events it is told about, so that ``final_stats`` has
    something to report.
    """

    def __init__(self, host: CacheHost | None = None) -> None:
        self.host = host
        self.stats: Counter[str] = Counter()

    def initialize(self) -> None:
        """Reset the event counters."""
        self.stats.clear()

    def cache_operate(self, addr, ip, cache_hit, access_type, metadata_in):
        self.stats["access"] += 1
        return metadata_in

    def cache_fill(self, addr, set_index, way, prefetch, evicted_addr, metadata_in):
        self.stats["fill"] += 1
        return metadata_in

    def cycle_operate(self) -> None:
        self.stats["cycle"] += 1

    def final_stats(self) -> dict[str, int]:
        """Return the counts of the events seen."""
        return dict(self.stats)


class NoInstructionPrefetcher:
    """Instruction prefetcher that issues no prefetches.

    It only counts the events it is told about.
    """

    def __init__(self, host: InstructionHost | None = None) -> None:
        self.host = host
        self.stats: Counter[str] = Counter()

    def initialize(self) -> None:
        """Reset the event counters."""
        self.stats.clear()

    def branch_operate(self, ip, branch_type, branch_target) -> None:
        self.stats["branch"] += 1

    def cache_operate(self, v_addr, cache_hit, prefetch_hit, metadata_in):
        self.stats["access"] += 1
        return metadata_in

    def cycle_operate(self) -> None:
        self.stats["cycle"] += 1

    def cache_fill(self, v_addr, set_index, way, prefetch, evicted_v_addr, metadata_in):
        self.stats["fill"] += 1
        return metadata_in

    def final_stats(self) -> dict[str, int]:
        """Return the counts of the events seen."""
        return dict(self.stats)