"""Prefetchers that fetch the cache line after each access."""

from __future__ import annotations

from uarchsim.prefetch import (
    CacheHost,
    InstructionHost,
    NoInstructionPrefetcher,
    NoPrefetcher,
)

LOG2_BLOCK_SIZE = 6
BLOCK_SIZE = 1 << LOG2_BLOCK_SIZE


class NextLinePrefetcher(NoPrefetcher):
    """Data prefetcher that requests the next block on every access."""

    def __init__(self, host: CacheHost | None = None, name: str = "") -> None:
        super().__init__(host)
        self.name = name

    def initialize(self) -> None:
        print(f"{self.name} next line prefetcher")

    def cache_operate(self, addr, ip, cache_hit, access_type, metadata_in):
        self.host.prefetch_line(ip, addr, addr + BLOCK_SIZE, True, 0)
        return metadata_in


class NextLineInstructionPrefetcher(NoInstructionPrefetcher):
    """Instruction prefetcher that requests the next code line on every access."""

    def __init__(self, host: InstructionHost | None = None, cpu: int = 0) -> None:
        super().__init__(host)
        self.cpu = cpu

    def initialize(self) -> None:
        print(f"CPU {self.cpu} next line instruction prefetcher")

    def cache_operate(self, v_addr, cache_hit, prefetch_hit, metadata_in):
        self.host.prefetch_code_line(v_addr + BLOCK_SIZE)
        return metadata_in