"""Set-associative branch target buffer with a return address stack."""

from __future__ import annotations

import enum
from dataclasses import dataclass

SETS = 1024
WAYS = 8
INDIRECT_SIZE = 4096
RAS_SIZE = 64
CALL_INSTR_SIZE_TRACKERS = 1024
DEFAULT_CALL_SIZE = 4
MAX_CALL_SIZE = 10

_MASK64 = (1 << 64) - 1


class BranchType(enum.IntEnum):
    NOT_BRANCH = 0
    DIRECT_JUMP = 1
    INDIRECT = 2
    CONDITIONAL = 3
    DIRECT_CALL = 4
    INDIRECT_CALL = 5
    RETURN = 6
    OTHER = 7


@dataclass
class BTBEntry:
    ip_tag: int = 0
    target: int = 0
    always_taken: bool = False
    lru: int = 0


class BasicBTB:
    """Predicts branch targets: BTB for direct branches, a hashed table for
    indirect ones and a return address stack for returns."""

    def __init__(self, cpu: int = 0) -> None:
        self.cpu = cpu
        self._reset()

    def _reset(self) -> None:
        self._sets = [[BTBEntry() for _ in range(WAYS)] for _ in range(SETS)]
        self._lru_counter = 0
        self._indirect = [0] * INDIRECT_SIZE
        self._conditional_history = 0
        self._ras = [0] * RAS_SIZE
        self._ras_index = 0
        self._call_sizes = [DEFAULT_CALL_SIZE] * CALL_INSTR_SIZE_TRACKERS

    def initialize(self) -> None:
        print(
            f"Basic BTB sets: {SETS} ways: {WAYS} indirect buffer size: "
            f"{INDIRECT_SIZE} RAS size: {RAS_SIZE}"
        )
        self._reset()

    @staticmethod
    def set_index(ip: int) -> int:
        return (ip >> 2) & (SETS - 1)

    def find_entry(self, ip: int) -> BTBEntry | None:
        return next((e for e in self._sets[self.set_index(ip)] if e.ip_tag == ip), None)

    def _lru_entry(self, set_idx: int) -> BTBEntry:
        ways = self._sets[set_idx]
        victim = ways[0]
        for entry in ways:
            if entry.lru < victim.lru:
                victim = entry
        return victim

    def _touch(self, entry: BTBEntry) -> None:
        entry.lru = self._lru_counter
        self._lru_counter += 1

    def _indirect_hash(self, ip: int) -> int:
        return ((ip >> 2) ^ self._conditional_history) & (INDIRECT_SIZE - 1)

    def _push_ras(self, ip: int) -> None:
        self._ras_index = (self._ras_index + 1) % RAS_SIZE
        self._ras[self._ras_index] = ip

    def _peek_ras(self) -> int:
        return self._ras[self._ras_index]

    def _pop_ras(self) -> int:
        target = self._ras[self._ras_index]
        self._ras[self._ras_index] = 0
        self._ras_index = (self._ras_index - 1) % RAS_SIZE
        return target

    @staticmethod
    def _call_size_hash(ip: int) -> int:
        return ip & (CALL_INSTR_SIZE_TRACKERS - 1)

    def call_size(self, ip: int) -> int:
        return self._call_sizes[self._call_size_hash(ip)]

    def predict(self, ip: int, branch_type) -> tuple[int, bool]:
        """Return ``(target, always_taken)`` for the branch at ``ip``."""
        always_taken = branch_type != BranchType.CONDITIONAL

        if branch_type in (BranchType.DIRECT_CALL, BranchType.INDIRECT_CALL):
            self._push_ras(ip)

        if branch_type == BranchType.RETURN:
            target = self._peek_ras()
            return (target + self.call_size(target)) & _MASK64, always_taken
        if branch_type in (BranchType.INDIRECT, BranchType.INDIRECT_CALL):
            return self._indirect[self._indirect_hash(ip)], always_taken

        entry = self.find_entry(ip)
        if entry is None:
            return 0, True
        self._touch(entry)
        return entry.target, entry.always_taken

    def update(self, ip: int, branch_target: int, taken, branch_type) -> None:
        taken = bool(taken)
        if branch_type in (BranchType.INDIRECT, BranchType.INDIRECT_CALL):
            self._indirect[self._indirect_hash(ip)] = branch_target
        if branch_type == BranchType.CONDITIONAL:
            self._conditional_history = ((self._conditional_history << 1) | taken) & _MASK64

        if branch_type == BranchType.RETURN:
            call_ip = self._pop_ras()
            estimated = abs(call_ip - branch_target)
            if estimated <= MAX_CALL_SIZE:
                self._call_sizes[self._call_size_hash(call_ip)] = estimated
        elif branch_type not in (BranchType.INDIRECT, BranchType.INDIRECT_CALL):
            entry = self.find_entry(ip)
            if entry is None:
                if branch_target != 0 and taken:
                    victim = self._lru_entry(self.set_index(ip))
                    victim.ip_tag = ip
                    victim.target = branch_target
                    victim.always_taken = True
                    self._touch(victim)
            else:
                entry.target = branch_target
                if not taken:
                    entry.always_taken = False