"""Hashed perceptron branch predictor with geometric history lengths and a
dynamically adjusted training threshold."""

from __future__ import annotations

from functools import reduce
from operator import xor

NTABLES = 16
MAXHIST = 232
SPEED = 18
HISTORY_LENGTHS = (0, 3, 4, 6, 8, 10, 14, 19, 26, 36, 49, 67, 91, 125, 170, MAXHIST)
LOG_TABLE_SIZE = 12
TABLE_SIZE = 1 << LOG_TABLE_SIZE
NGHIST_WORDS = MAXHIST // LOG_TABLE_SIZE + 1
INITIAL_THETA = 10
WEIGHT_MAX = 127
WEIGHT_MIN = -128


class HashedPerceptronPredictor:
    def __init__(self, cpu: int = 0) -> None:
        self.cpu = cpu
        self.tc = 0
        self._yout = 0
        self._indices = [0] * NTABLES
        self._reset()

    def _reset(self) -> None:
        self._tables = [[0] * TABLE_SIZE for _ in range(NTABLES)]
        self._ghist = [0] * NGHIST_WORDS
        self.theta = INITIAL_THETA

    def initialize(self) -> None:
        self._reset()

    def _index(self, pc: int, n: int) -> int:
        most_words, last_word = divmod(n, LOG_TABLE_SIZE)
        x = reduce(xor, self._ghist[:most_words], 0)
        x ^= self._ghist[most_words] & ((1 << last_word) - 1)
        return (x ^ pc) & (TABLE_SIZE - 1)

    def predict_branch(self, ip, predicted_target, always_taken, branch_type) -> bool:
        self._indices = [self._index(ip, n) for n in HISTORY_LENGTHS]
        self._yout = sum(table[i] for table, i in zip(self._tables, self._indices))
        return self._yout >= 1

    def last_branch_result(self, ip, branch_target, taken, branch_type) -> None:
        taken = bool(taken)
        correct = taken == (self._yout >= 1)

        bit = int(taken)
        for i, word in enumerate(self._ghist):
            word = (word << 1) | bit
            bit = 1 if word & TABLE_SIZE else 0
            self._ghist[i] = word & (TABLE_SIZE - 1)

        magnitude = abs(self._yout)
        if correct and magnitude >= self.theta:
            return

        for table, i in zip(self._tables, self._indices):
            if taken:
                table[i] = min(table[i] + 1, WEIGHT_MAX)
            else:
                table[i] = max(table[i] - 1, WEIGHT_MIN)

        if not correct:
            self.tc += 1
            if self.tc >= SPEED:
                self.theta += 1
                self.tc = 0
        else:
            self.tc -= 1
            if self.tc <= -SPEED:
                self.theta -= 1
                self.tc = 0