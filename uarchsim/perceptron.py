"""Perceptron branch predictor with a speculative global history."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass

PERCEPTRON_HISTORY = 24
PERCEPTRON_BITS = 8
NUM_PERCEPTRONS = 163
THETA = int(1.93 * PERCEPTRON_HISTORY + 14)
NUM_UPDATE_ENTRIES = 100

_HISTORY_MASK = (1 << PERCEPTRON_HISTORY) - 1


class Perceptron:
    """A bias weight plus one saturating weight per history bit."""

    def __init__(self, history_length: int = PERCEPTRON_HISTORY, bits: int = PERCEPTRON_BITS) -> None:
        self.history_length = history_length
        self.max_weight = (1 << (bits - 1)) - 1
        self.min_weight = -(self.max_weight + 1)
        self.bias = 0
        self.weights = [0] * history_length

    def _bits(self, history: int):
        return ((history >> i) & 1 for i in range(self.history_length))

    def predict(self, history: int) -> int:
        """Return the dot product of the weights with the +1/-1 history."""
        return self.bias + sum(
            w if bit else -w for w, bit in zip(self.weights, self._bits(history))
        )

    def _step(self, value: int, up: bool) -> int:
        if up:
            return min(value + 1, self.max_weight)
        return max(value - 1, self.min_weight)

    def update(self, result, history: int) -> None:
        """Train towards ``result`` under ``history``."""
        result = bool(result)
        self.bias = self._step(self.bias, result)
        self.weights = [
            self._step(w, bool(bit) == result)
            for w, bit in zip(self.weights, self._bits(history))
        ]


@dataclass
class PerceptronState:
    """What a prediction needs remembered until its branch resolves."""

    ip: int = 0
    prediction: bool = False
    output: int = 0
    history: int = 0


class PerceptronPredictor:
    def __init__(self, cpu: int = 0) -> None:
        self.cpu = cpu
        self._reset()

    def _reset(self) -> None:
        self.perceptrons = [Perceptron() for _ in range(NUM_PERCEPTRONS)]
        self.state_buf: deque[PerceptronState] = deque()
        self.spec_global_history = 0
        self.global_history = 0

    def initialize(self) -> None:
        """Start from zeroed weights and empty histories."""
        self._reset()

    def predict_branch(self, ip, predicted_target, always_taken, branch_type) -> bool:
        output = self.perceptrons[ip % NUM_PERCEPTRONS].predict(self.spec_global_history)
        prediction = output >= 0

        self.state_buf.append(PerceptronState(ip, prediction, output, self.spec_global_history))
        if len(self.state_buf) > NUM_UPDATE_ENTRIES:
            self.state_buf.popleft()

        self.spec_global_history = ((self.spec_global_history << 1) | prediction) & _HISTORY_MASK
        return prediction

    def last_branch_result(self, ip, branch_target, taken, branch_type) -> None:
        state = next((s for s in self.state_buf if s.ip == ip), None)
        if state is None:
            return  # the state was lost; skip the update
        self.state_buf.remove(state)

        taken = bool(taken)
        self.global_history = ((self.global_history << 1) | taken) & _HISTORY_MASK

        mispredicted = state.prediction != taken
        if mispredicted:
            self.spec_global_history = self.global_history

        if -THETA <= state.output <= THETA or mispredicted:
            self.perceptrons[ip % NUM_PERCEPTRONS].update(taken, state.history)