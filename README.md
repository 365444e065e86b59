# uarchsim

Building blocks for trace-driven processor simulation: branch direction
predictors, a branch target buffer and a set of cache prefetchers. Each
component keeps its own state and is driven, call by call, by the simulator
that hosts it. The package has no dependencies outside the standard library.

## Branch direction predictors

Each predictor has `initialize()`, `predict_branch(ip, predicted_target,
always_taken, branch_type)` (returns a `bool`) and `last_branch_result(ip,
branch_target, taken, branch_type)`.

- `uarchsim.bimodal.BimodalPredictor` is a table of 2-bit saturating counters indexed by `ip % 16381`.
- `uarchsim.gshare.GsharePredictor` is a gshare predictor with 14 bits of global history; `uarchsim.gshare.gs_table_hash(ip, history)` gives its table index.
- `uarchsim.hashed_perceptron.HashedPerceptronPredictor` is a hashed perceptron over 16 tables with geometric history lengths and a dynamically adjusted training threshold (`theta`).
- `uarchsim.perceptron.PerceptronPredictor` is a perceptron predictor (163 perceptrons, 24 bits of history, 8-bit weights) with a speculative global history that is repaired on a misprediction. The single `Perceptron` and the remembered `PerceptronState` are usable on their own.

## Branch target prediction

`uarchsim.btb.BasicBTB` is a 1024-set, 8-way BTB for direct branches, a
4096-entry table for indirect branches hashed with conditional-branch history,
and a 64-entry return address stack that learns call instruction sizes.
`predict(ip, branch_type)` returns `(target, always_taken)`;
`update(ip, branch_target, taken, branch_type)` trains it. Branch kinds are
given by `uarchsim.btb.BranchType`.

## Prefetchers

- `uarchsim.prefetch.NoPrefetcher` and `NoInstructionPrefetcher` issue no prefetches; they count the events they see and return the counts from `final_stats()`.
- `uarchsim.next_line.NextLinePrefetcher` and `NextLineInstructionPrefetcher` request the line after every access.
- `uarchsim.ip_stride.IpStridePrefetcher` tracks the stride of each instruction address and, after the same stride twice in a row, issues up to three prefetches, one per `cycle_operate()` call, within the page.
- `uarchsim.va_ampm_lite.VaAmpmLitePrefetcher` keeps access and prefetch bitmaps for 128 pages and prefetches blocks that continue a stride found in the access map, up to two in each direction.
- `uarchsim.spp.SppPrefetcher` is a signature path prefetcher: a signature table (`SignatureTable`), a pattern table (`PatternTable`), a prefetch filter (`PrefetchFilter`) and a global register (`GlobalRegister`) holding accuracy counters and page-crossing prefetches. `final_stats()` returns the accuracy counters.

## Hosts

Prefetchers send their requests to a host object given to the constructor.
Data prefetchers call a host shaped like `uarchsim.prefetch.CacheHost`
(`prefetch_line`, `get_occupancy`, `get_size`); instruction prefetchers call
one shaped like `uarchsim.prefetch.InstructionHost` (`prefetch_code_line`).
`IpStridePrefetcher` also reads `host.current_cycle`. Fill levels are given by
`uarchsim.prefetch.FillLevel`.

```python
from uarchsim.next_line import NextLinePrefetcher

class RecordingCache:
    def __init__(self):
        self.requests = []

    def prefetch_line(self, ip, base_addr, pf_addr, fill_this_level, metadata):
        self.requests.append(pf_addr)
        return True

    def get_occupancy(self, queue_type, address):
        return 0

    def get_size(self, queue_type, address):
        return 16

cache = RecordingCache()
prefetcher = NextLinePrefetcher(cache, name="L2C")
prefetcher.cache_operate(0x1000, 0x400000, False, 0, 0)
print([hex(a) for a in cache.requests])  # ['0x1040']
```

## Predictor example

```python
from uarchsim.bimodal import BimodalPredictor
from uarchsim.btb import BasicBTB, BranchType

predictor = BimodalPredictor()
predictor.initialize()

btb = BasicBTB()
btb.initialize()

ip = 0x401000
for _ in range(3):
    predictor.last_branch_result(ip, 0x402000, True, BranchType.CONDITIONAL)
    btb.update(ip, 0x402000, True, BranchType.CONDITIONAL)

print(predictor.predict_branch(ip, 0x402000, False, BranchType.CONDITIONAL))  # True
print(btb.predict(ip, BranchType.CONDITIONAL))  # (4202496, True)
```

## What this package does not do

It has no processor core, cache hierarchy, replacement policies or trace
reader, and no command-line program. It provides only the components above;
running a simulation means writing the host that feeds them.

## Running the tests

```
pip install -e .[test]
pytest
```