"""Access-map pattern-matching prefetcher over virtual-address regions."""

from __future__ import annotations

from dataclasses import dataclass

from uarchsim.prefetch import CacheHost, FillLevel, NoPrefetcher

LOG2_BLOCK_SIZE = 6
LOG2_PAGE_SIZE = 12
BLOCK_SIZE = 1 << LOG2_BLOCK_SIZE
REGION_COUNT = 128
MAX_DISTANCE = 256
PREFETCH_DEGREE = 2

_MASK64 = (1 << 64) - 1


@dataclass
class Region:
    vpn: int = 0
    access_map: int = 0
    prefetch_map: int = 0
    lru: int = 0


class VaAmpmLitePrefetcher(NoPrefetcher):
    """Keeps per-page bitmaps of accessed and prefetched blocks and
    prefetches blocks that continue a stride seen in the access map."""

    def __init__(self, host: CacheHost | None = None, cpu: int = 0) -> None:
        super().__init__(host)
        self.cpu = cpu
        self._way_predict_index: int | None = 0
        self._way_predict_vpn = 0
        self._reset()

    def _reset(self) -> None:
        self._region_lru = 0
        self.regions = [Region() for _ in range(REGION_COUNT)]
        for i in range(REGION_COUNT):
            self._allocate(i, 0)

    def initialize(self) -> None:
        print(f"CPU {self.cpu} L2C Virtual Address Space AMPM-Lite Prefetcher")
        self._reset()

    def _allocate(self, index: int, vpn: int) -> None:
        self.regions[index] = Region(vpn, 0, 0, self._region_lru)
        self._region_lru += 1

    def find_region(self, vpn: int) -> int | None:
        """Index of the region tracking ``vpn``, or None.

        The last lookup is remembered and returned for a repeated ``vpn``.
        """
        if self._way_predict_vpn == vpn:
            return self._way_predict_index
        index = next((i for i, r in enumerate(self.regions) if r.vpn == vpn), None)
        self._way_predict_index = index
        self._way_predict_vpn = vpn
        return index

    def lru_region(self) -> int:
        return min(range(REGION_COUNT), key=lambda i: self.regions[i].lru)

    @staticmethod
    def _locate(v_addr: int) -> tuple[int, int]:
        return v_addr >> LOG2_PAGE_SIZE, (v_addr >> LOG2_BLOCK_SIZE) & 63

    def _region_for_marking(self, vpn: int) -> Region:
        index = self.find_region(vpn)
        if index is None:
            index = self.lru_region()
            self._allocate(index, vpn)
        return self.regions[index]

    def check_cl_access(self, v_addr: int) -> bool:
        vpn, offset = self._locate(v_addr)
        index = self.find_region(vpn)
        return index is not None and bool((self.regions[index].access_map >> offset) & 1)

    def set_cl_access(self, v_addr: int) -> None:
        vpn, offset = self._locate(v_addr)
        self._region_for_marking(vpn).access_map |= 1 << offset

    def reset_cl_access(self, v_addr: int) -> None:
        vpn, offset = self._locate(v_addr)
        index = self.find_region(vpn)
        if index is not None:
            self.regions[index].access_map &= ~(1 << offset) & _MASK64

    def check_cl_prefetch(self, v_addr: int) -> bool:
        vpn, offset = self._locate(v_addr)
        index = self.find_region(vpn)
        return index is not None and bool((self.regions[index].prefetch_map >> offset) & 1)

    def set_cl_prefetch(self, v_addr: int) -> None:
        vpn, offset = self._locate(v_addr)
        self._region_for_marking(vpn).prefetch_map |= 1 << offset

    def reset_cl_prefetch(self, v_addr: int) -> None:
        vpn, offset = self._locate(v_addr)
        index = self.find_region(vpn)
        if index is not None:
            self.regions[index].prefetch_map &= ~(1 << offset) & _MASK64

    def _prefetch(self, ip: int, base_addr: int, pf_addr: int, fill_level) -> bool:
        if (base_addr >> LOG2_BLOCK_SIZE) == (pf_addr >> LOG2_BLOCK_SIZE):
            return False
        return bool(self.host.prefetch_line(ip, base_addr, pf_addr, fill_level, 0))

    def _sweep(self, addr: int, ip: int, direction: int) -> None:
        issued = 0
        for i in range(1, MAX_DISTANCE + 1):
            step = direction * i * BLOCK_SIZE
            behind = (addr - step) & _MASK64
            behind2 = (addr - 2 * step) & _MASK64
            ahead = (addr + step) & _MASK64
            if (
                self.check_cl_access(behind)
                and self.check_cl_access(behind2)
                and not self.check_cl_access(ahead)
                and not self.check_cl_prefetch(ahead)
            ):
                fill_level = FillLevel.L2
                if self.host.get_occupancy(0, 0) > (self.host.get_size(0, 0) >> 1):
                    fill_level = FillLevel.LLC
                if self._prefetch(ip, addr, ahead, fill_level):
                    self.set_cl_prefetch(ahead)
                    issued += 1
            if issued >= PREFETCH_DEGREE:
                break

    def cache_operate(self, addr, ip, cache_hit, access_type, metadata_in):
        vpn = addr >> LOG2_PAGE_SIZE
        if self.find_region(vpn) is None:
            self._allocate(self.lru_region(), vpn)
            return metadata_in

        self.set_cl_access(addr)
        self._sweep(addr, ip, 1)
        self._sweep(addr, ip, -1)
        return metadata_in

    def cache_fill(self, addr, set_index, way, prefetch, evicted_addr, metadata_in):
        return metadata_in