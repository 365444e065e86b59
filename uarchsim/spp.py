"""Signature path prefetcher: per-page delta signatures drive a pattern
table whose confident deltas are prefetched along a lookahead path."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import NamedTuple

from uarchsim.prefetch import CacheHost, NoPrefetcher

LOG2_BLOCK_SIZE = 6
LOG2_PAGE_SIZE = 12
BLOCK_SIZE = 1 << LOG2_BLOCK_SIZE
PAGE_SIZE = 1 << LOG2_PAGE_SIZE
DEFAULT_MSHR_SIZE = 32

# Signature table
ST_SET = 1
ST_WAY = 256
ST_TAG_BIT = 16
ST_TAG_MASK = (1 << ST_TAG_BIT) - 1
SIG_SHIFT = 3
SIG_BIT = 12
SIG_MASK = (1 << SIG_BIT) - 1
SIG_DELTA_BIT = 7

# Pattern table
PT_SET = 512
PT_WAY = 4
C_SIG_BIT = 4
C_DELTA_BIT = 4
C_SIG_MAX = (1 << C_SIG_BIT) - 1
C_DELTA_MAX = (1 << C_DELTA_BIT) - 1

# Prefetch filter
QUOTIENT_BIT = 10
REMAINDER_BIT = 6
HASH_BIT = QUOTIENT_BIT + REMAINDER_BIT + 1
FILTER_SET = 1 << QUOTIENT_BIT
FILL_THRESHOLD = 90
PF_THRESHOLD = 25

# Global register
GLOBAL_COUNTER_BIT = 10
GLOBAL_COUNTER_MAX = (1 << GLOBAL_COUNTER_BIT) - 1
MAX_GHR_ENTRY = 8

_MASK64 = (1 << 64) - 1


class FilterRequest(enum.IntEnum):
    """Kind of event the prefetch filter is asked about."""

    SPP_L2C_PREFETCH = 0
    SPP_LLC_PREFETCH = 1
    L2C_DEMAND = 2
    L2C_EVICT = 3


def get_hash(key: int) -> int:
    """64-bit mix of ``key`` (Jenkins mix followed by a multiplicative step)."""
    key &= _MASK64
    key = (key + (key << 12)) & _MASK64
    key ^= key >> 22
    key = (key + (key << 4)) & _MASK64
    key ^= key >> 9
    key = (key + (key << 10)) & _MASK64
    key ^= key >> 2
    key = (key + (key << 7)) & _MASK64
    key ^= key >> 12
    return ((key >> 3) * 2654435761) & _MASK64


def _sig_delta(delta: int) -> int:
    """Sign-magnitude encoding of a delta for signature building."""
    return -delta + (1 << (SIG_DELTA_BIT - 1)) if delta < 0 else delta


def _next_sig(sig: int, delta: int) -> int:
    return ((sig << SIG_SHIFT) ^ _sig_delta(delta)) & SIG_MASK


@dataclass
class _GhrEntry:
    valid: bool = False
    sig: int = 0
    confidence: int = 0
    offset: int = 0
    delta: int = 0


class GlobalRegister:
    """Global prefetch accuracy counters plus a small history of prefetches
    that crossed a page boundary."""

    def __init__(self) -> None:
        self.pf_useful = 0
        self.pf_issued = 0
        self.global_accuracy = 0
        self.entries = [_GhrEntry() for _ in range(MAX_GHR_ENTRY)]

    def update_entry(self, pf_sig, pf_confidence, pf_offset, pf_delta) -> None:
        """Record a page-crossing prefetch, replacing the least confident entry."""
        min_conf = 100
        victim = None
        for entry in self.entries:
            if entry.valid and entry.offset == pf_offset:
                entry.sig = pf_sig
                entry.confidence = pf_confidence
                entry.delta = pf_delta
                return
            if entry.confidence < min_conf:
                min_conf = entry.confidence
                victim = entry

        if victim is None:
            raise RuntimeError("GHR: cannot find a replacement victim")

        victim.valid = True
        victim.sig = pf_sig
        victim.confidence = pf_confidence
        victim.offset = pf_offset
        victim.delta = pf_delta

    def check_entry(self, page_offset) -> int | None:
        """Index of the most confident entry for ``page_offset``, or None."""
        max_conf = 0
        found = None
        for i, entry in enumerate(self.entries):
            if entry.offset == page_offset and max_conf < entry.confidence:
                max_conf = entry.confidence
                found = i
        return found


@dataclass
class _StEntry:
    valid: bool = False
    tag: int = 0
    last_offset: int = 0
    sig: int = 0
    lru: int = 0


class SignatureTable:
    """Tracks the last block offset and delta signature of recent pages."""

    def __init__(self, ghr: GlobalRegister | None = None) -> None:
        self.ghr = ghr if ghr is not None else GlobalRegister()
        self.sets = [[_StEntry(lru=way) for way in range(ST_WAY)] for _ in range(ST_SET)]

    def read_and_update_sig(self, page, page_offset) -> tuple[int, int, int]:
        """Record an access and return ``(last_sig, curr_sig, delta)``."""
        ways = self.sets[get_hash(page) % ST_SET]
        partial_page = page & ST_TAG_MASK
        last_sig = curr_sig = delta = 0

        entry = next((e for e in ways if e.valid and e.tag == partial_page), None)
        if entry is not None:
            last_sig = entry.sig
            delta = page_offset - entry.last_offset
            if delta:
                entry.sig = _next_sig(last_sig, delta)
                curr_sig = entry.sig
                entry.last_offset = page_offset
            else:
                last_sig = 0  # same cache line again
        else:
            entry = next((e for e in ways if not e.valid), None)
            if entry is None:
                entry = next((e for e in ways if e.lru == ST_WAY - 1), None)
                if entry is None:
                    raise RuntimeError("ST: cannot find a replacement victim")
            else:
                entry.valid = True
            entry.tag = partial_page
            entry.sig = 0
            entry.last_offset = page_offset
            curr_sig = 0

            found = self.ghr.check_entry(page_offset)
            if found is not None:
                ghr_entry = self.ghr.entries[found]
                entry.sig = _next_sig(ghr_entry.sig, ghr_entry.delta)
                curr_sig = entry.sig

        position = entry.lru
        for other in ways:
            if other.lru < position:
                other.lru += 1
                if other.lru >= ST_WAY:
                    raise RuntimeError(f"ST: LRU value out of range: {other.lru}")
        entry.lru = 0
        return last_sig, curr_sig, delta


class PatternRead(NamedTuple):
    """Result of a pattern-table lookup."""

    candidates: list[tuple[int, int]]
    lookahead_delta: int | None
    lookahead_conf: int
    depth: int


class PatternTable:
    """Counts how often each delta follows a signature."""

    def __init__(self, ghr: GlobalRegister | None = None) -> None:
        self.ghr = ghr if ghr is not None else GlobalRegister()
        self.delta = [[0] * PT_WAY for _ in range(PT_SET)]
        self.c_delta = [[0] * PT_WAY for _ in range(PT_SET)]
        self.c_sig = [0] * PT_SET

    def _count_sig(self, set_idx: int) -> None:
        self.c_sig[set_idx] += 1
        if self.c_sig[set_idx] > C_SIG_MAX:
            self.c_delta[set_idx] = [c >> 1 for c in self.c_delta[set_idx]]
            self.c_sig[set_idx] >>= 1

    def update_pattern(self, last_sig, curr_delta) -> None:
        """Strengthen the correlation between ``last_sig`` and ``curr_delta``."""
        set_idx = get_hash(last_sig) % PT_SET
        deltas = self.delta[set_idx]
        counts = self.c_delta[set_idx]

        if curr_delta in deltas:
            counts[deltas.index(curr_delta)] += 1
        else:
            victim = None
            min_counter = C_SIG_MAX
            for way, count in enumerate(counts):
                if count < min_counter:
                    victim = way
                    min_counter = count
            if victim is None:
                raise RuntimeError("PT: cannot find a replacement victim")
            deltas[victim] = curr_delta
            counts[victim] = 0

        self._count_sig(set_idx)

    def read_pattern(self, curr_sig, lookahead_conf, depth) -> PatternRead:
        """Return the confident deltas for ``curr_sig`` and the lookahead path.

        At depth zero a delta's confidence is local; deeper, it is scaled by
        the global accuracy and the confidence of the path so far.
        """
        set_idx = get_hash(curr_sig) % PT_SET
        c_sig = self.c_sig[set_idx]
        if not c_sig:
            return PatternRead([], None, lookahead_conf, depth)

        candidates: list[tuple[int, int]] = []
        lookahead_delta = None
        max_conf = 0
        for delta, c_delta in zip(self.delta[set_idx], self.c_delta[set_idx]):
            if depth:
                pf_conf = self.ghr.global_accuracy * c_delta // c_sig * lookahead_conf // 100
            else:
                pf_conf = 100 * c_delta // c_sig
            if pf_conf >= PF_THRESHOLD:
                candidates.append((delta, pf_conf))
                if pf_conf > max_conf:
                    lookahead_delta = delta
                    max_conf = pf_conf

        if max_conf >= PF_THRESHOLD:
            depth += 1
        return PatternRead(candidates, lookahead_delta, max_conf, depth)


class PrefetchFilter:
    """Quotient/remainder filter of prefetched and used cache lines."""

    def __init__(self, ghr: GlobalRegister | None = None) -> None:
        self.ghr = ghr if ghr is not None else GlobalRegister()
        self.remainder_tag = [0] * FILTER_SET
        self.valid = [False] * FILTER_SET
        self.useful = [False] * FILTER_SET

    def check(self, check_addr, filter_request) -> bool:
        """Apply ``filter_request`` for the line of ``check_addr``.

        Returns False when a prefetch should not be issued.
        """
        try:
            request = FilterRequest(filter_request)
        except ValueError:
            raise ValueError(f"invalid filter request type: {filter_request}") from None

        line_hash = get_hash(check_addr >> LOG2_BLOCK_SIZE)
        quotient = (line_hash >> REMAINDER_BIT) & ((1 << QUOTIENT_BIT) - 1)
        remainder = line_hash % (1 << REMAINDER_BIT)
        present = (self.valid[quotient] or self.useful[quotient]) and self.remainder_tag[quotient] == remainder

        if request is FilterRequest.SPP_L2C_PREFETCH:
            if present:
                return False
            self.valid[quotient] = True
            self.useful[quotient] = False
            self.remainder_tag[quotient] = remainder
        elif request is FilterRequest.SPP_LLC_PREFETCH:
            # Low-confidence prefetches are not recorded, so a later
            # confident one can still pull the line from the LLC.
            if present:
                return False
        elif request is FilterRequest.L2C_DEMAND:
            if self.remainder_tag[quotient] == remainder and not self.useful[quotient]:
                self.useful[quotient] = True
                if self.valid[quotient]:
                    self.ghr.pf_useful += 1
        else:
            if self.valid[quotient] and not self.useful[quotient] and self.ghr.pf_useful:
                self.ghr.pf_useful -= 1
            self.valid[quotient] = False
            self.useful[quotient] = False
            self.remainder_tag[quotient] = 0
        return True


class SppPrefetcher(NoPrefetcher):
    """Signature path prefetcher with lookahead, filter and page-crossing history."""

    def __init__(self, host: CacheHost | None = None, mshr_size: int = DEFAULT_MSHR_SIZE) -> None:
        super().__init__(host)
        self.mshr_size = mshr_size
        self.ghr = GlobalRegister()
        self.st = SignatureTable(self.ghr)
        self.pt = PatternTable(self.ghr)
        self.filter = PrefetchFilter(self.ghr)

    def initialize(self) -> None:
        """Reset the event counters; the tables are set up on construction."""
        super().initialize()

    def cycle_operate(self) -> None:
        """Only counts the cycle; no work is done per cycle."""
        super().cycle_operate()

    def cache_operate(self, addr, ip, cache_hit, access_type, metadata_in):
        ghr = self.ghr
        page = addr >> LOG2_PAGE_SIZE
        page_offset = (addr >> LOG2_BLOCK_SIZE) & (PAGE_SIZE // BLOCK_SIZE - 1)
        ghr.global_accuracy = (100 * ghr.pf_useful) // ghr.pf_issued if ghr.pf_issued else 0

        last_sig, curr_sig, delta = self.st.read_and_update_sig(page, page_offset)
        self.filter.check(addr, FilterRequest.L2C_DEMAND)
        if last_sig:
            self.pt.update_pattern(last_sig, delta)

        page_base = addr & ~(PAGE_SIZE - 1)
        base_addr = addr
        lookahead_conf = 100
        depth = 0
        queued = 0
        while queued < self.mshr_size:
            read = self.pt.read_pattern(curr_sig, lookahead_conf, depth)
            lookahead_conf, depth = read.lookahead_conf, read.depth
            candidates = read.candidates[: self.mshr_size - queued]
            queued += len(candidates)

            for pf_delta, confidence in candidates:
                pf_addr = ((base_addr & ~(BLOCK_SIZE - 1)) + (pf_delta << LOG2_BLOCK_SIZE)) & _MASK64
                if pf_addr & ~(PAGE_SIZE - 1) == page_base:
                    fill_l2 = confidence >= FILL_THRESHOLD
                    request = FilterRequest.SPP_L2C_PREFETCH if fill_l2 else FilterRequest.SPP_LLC_PREFETCH
                    if self.filter.check(pf_addr, request):
                        # addr, not base_addr, keeps the physical page boundary
                        self.host.prefetch_line(ip, addr, pf_addr, fill_l2, 0)
                        if fill_l2:
                            ghr.pf_issued += 1
                            if ghr.pf_issued > GLOBAL_COUNTER_MAX:
                                ghr.pf_issued >>= 1
                                ghr.pf_useful >>= 1
                else:
                    ghr.update_entry(curr_sig, confidence, (pf_addr >> LOG2_BLOCK_SIZE) & 0x3F, pf_delta)

            if read.lookahead_delta is not None:
                base_addr = (base_addr + (read.lookahead_delta << LOG2_BLOCK_SIZE)) & _MASK64
                curr_sig = _next_sig(curr_sig, read.lookahead_delta)

            if not candidates:
                break

        return metadata_in

    def cache_fill(self, addr, set_index, way, prefetch, evicted_addr, metadata_in):
        self.filter.check(evicted_addr, FilterRequest.L2C_EVICT)
        return metadata_in

    def final_stats(self) -> dict[str, int]:
        """Return the global prefetch accuracy counters."""
        return {
            "pf_issued": self.ghr.pf_issued,
            "pf_useful": self.ghr.pf_useful,
            "global_accuracy": self.ghr.global_accuracy,
        }