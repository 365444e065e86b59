"""Bimodal branch predictor with two-bit saturating counters."""

from __future__ import annotations

TABLE_SIZE = 16384
PRIME = 16381
COUNTER_BITS = 2
_COUNTER_MAX = (1 << COUNTER_BITS) - 1
_TAKEN_THRESHOLD = 1 << (COUNTER_BITS - 1)


class BimodalPredictor:
    """Predicts a branch from a counter selected by its address."""

    def __init__(self, cpu: int = 0) -> None:
        self.cpu = cpu
        self._table = [0] * TABLE_SIZE

    def initialize(self) -> None:
        print(f"CPU {self.cpu} Bimodal branch predictor")
        self._table = [0] * TABLE_SIZE

    def predict_branch(self, ip, predicted_target, always_taken, branch_type) -> bool:
        return self._table[ip % PRIME] >= _TAKEN_THRESHOLD

    def last_branch_result(self, ip, branch_target, taken, branch_type) -> None:
        index = ip % PRIME
        if taken:
            self._table[index] = min(self._table[index] + 1, _COUNTER_MAX)
        else:
            self._table[index] = max(self._table[index] - 1, 0)