"""Gshare branch predictor: global history XOR address indexes counters."""

from __future__ import annotations

GLOBAL_HISTORY_LENGTH = 14
GLOBAL_HISTORY_MASK = (1 << GLOBAL_HISTORY_LENGTH) - 1
TABLE_SIZE = 16384
_WEAKLY_TAKEN = 2


def gs_table_hash(ip: int, history: int) -> int:
    """Index into the counter table for ``ip`` under ``history``."""
    value = (
        ip
        ^ (ip >> GLOBAL_HISTORY_LENGTH)
        ^ (ip >> (GLOBAL_HISTORY_LENGTH * 2))
        ^ history
    ) & 0xFFFFFFFF
    return value % TABLE_SIZE


class GsharePredictor:
    def __init__(self, cpu: int = 0) -> None:
        self.cpu = cpu
        self._reset()

    def _reset(self) -> None:
        self.history = 0
        self.last_prediction = False
        self._table = [_WEAKLY_TAKEN] * TABLE_SIZE

    def initialize(self) -> None:
        print(f"CPU {self.cpu} GSHARE branch predictor")
        self._reset()

    def predict_branch(self, ip, predicted_target, always_taken, branch_type) -> bool:
        prediction = self._table[gs_table_hash(ip, self.history)] >= 2
        self.last_prediction = prediction
        return prediction

    def last_branch_result(self, ip, branch_target, taken, branch_type) -> None:
        taken = bool(taken)
        index = gs_table_hash(ip, self.history)
        if taken:
            self._table[index] = min(self._table[index] + 1, 3)
        else:
            self._table[index] = max(self._table[index] - 1, 0)
        self.history = ((self.history << 1) & GLOBAL_HISTORY_MASK) | taken