import pytest

from uarchsim.gshare import GLOBAL_HISTORY_MASK, TABLE_SIZE, GsharePredictor, gs_table_hash


def predict(p, ip):
    return p.predict_branch(ip, 0, False, 3)


def test_initially_weakly_taken():
    p = GsharePredictor()
    assert predict(p, 0x1234) is True
    assert p.last_prediction is True


def test_hash_of_zero():
    assert gs_table_hash(0, 0) == 0


@pytest.mark.parametrize("ip", [0, 1, 0x400123, 0xFFFFFFFFFFFFFFFF, 0x7FFF0000ABCD])
@pytest.mark.parametrize("history", [0, 1, GLOBAL_HISTORY_MASK])
def test_hash_in_range(ip, history):
    assert 0 <= gs_table_hash(ip, history) < TABLE_SIZE


def test_hash_depends_on_history():
    assert gs_table_hash(0x400, 0) != gs_table_hash(0x400, 1)


def test_history_records_outcomes():
    p = GsharePredictor()
    outcomes = [True, False, True, True]
    for taken in outcomes:
        p.last_branch_result(0x400, 0, taken, 3)
    assert p.history == 0b1011


def test_history_is_bounded():
    p = GsharePredictor()
    for _ in range(40):
        p.last_branch_result(0x400, 0, True, 3)
    assert p.history == GLOBAL_HISTORY_MASK


def test_not_taken_learned_under_fixed_history():
    p = GsharePredictor()
    # With all-zero history the index stays the same.
    p.last_branch_result(0x400, 0, False, 3)
    assert p.history == 0
    assert predict(p, 0x400) is False
    assert p.last_prediction is False


def test_initialize_resets():
    p = GsharePredictor()
    p.last_branch_result(0x400, 0, False, 3)
    p.initialize()
    assert p.history == 0
    assert predict(p, 0x400) is True