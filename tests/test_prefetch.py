import pytest

from uarchsim.prefetch import NoInstructionPrefetcher, NoPrefetcher


class RecordingHost:
    def __init__(self):
        self.calls = []

    def prefetch_line(self, ip, base_addr, pf_addr, fill_this_level, metadata):
        self.calls.append(("line", pf_addr))
        return True

    def get_occupancy(self, queue_type, address):
        return 0

    def get_size(self, queue_type, address):
        return 16

    def prefetch_code_line(self, pf_v_addr):
        self.calls.append(("code", pf_v_addr))
        return True


@pytest.mark.parametrize("metadata", [0, 1, 0xDEADBEEF])
def test_cache_operate_passes_metadata_through(metadata):
    pf = NoPrefetcher(RecordingHost())
    assert pf.cache_operate(0x1000, 0x400, True, 0, metadata) == metadata


@pytest.mark.parametrize("metadata", [0, 7, 123456])
def test_cache_fill_passes_metadata_through(metadata):
    pf = NoPrefetcher(RecordingHost())
    assert pf.cache_fill(0x2000, 3, 1, False, 0x4000, metadata) == metadata


def test_no_prefetcher_never_prefetches():
    host = RecordingHost()
    pf = NoPrefetcher(host)
    pf.initialize()
    for addr in range(0, 64 * 100, 64):
        pf.cache_operate(addr, 0x400, False, 0, 0)
        pf.cycle_operate()
    pf.final_stats()
    assert host.calls == []


def test_instruction_cache_operate_passes_metadata_through():
    pf = NoInstructionPrefetcher(RecordingHost())
    assert pf.cache_operate(0x400, False, False, 42) == 42
    assert pf.cache_fill(0x400, 0, 0, True, 0x800, 9) == 9


def test_no_instruction_prefetcher_never_prefetches():
    host = RecordingHost()
    pf = NoInstructionPrefetcher(host)
    pf.initialize()
    for addr in range(0x400, 0x800, 4):
        pf.branch_operate(addr, 3, addr + 16)
        pf.cache_operate(addr, True, False, 0)
        pf.cycle_operate()
    pf.final_stats()
    assert host.calls == []