from uarchsim.btb import BasicBTB, BranchType


def test_unknown_branch_has_no_target():
    btb = BasicBTB()
    assert btb.predict(0x4000, BranchType.CONDITIONAL) == (0, True)


def test_taken_conditional_is_learned():
    btb = BasicBTB()
    btb.update(0x4000, 0x5000, True, BranchType.CONDITIONAL)
    assert btb.predict(0x4000, BranchType.CONDITIONAL) == (0x5000, True)


def test_not_taken_clears_always_taken():
    btb = BasicBTB()
    btb.update(0x4000, 0x5000, True, BranchType.CONDITIONAL)
    btb.update(0x4000, 0x5000, False, BranchType.CONDITIONAL)
    assert btb.predict(0x4000, BranchType.CONDITIONAL) == (0x5000, False)


def test_not_taken_branch_is_not_allocated():
    btb = BasicBTB()
    btb.update(0x4000, 0x5000, False, BranchType.CONDITIONAL)
    assert btb.find_entry(0x4000) is None


def test_zero_target_is_not_allocated():
    btb = BasicBTB()
    btb.update(0x4000, 0, True, BranchType.DIRECT_JUMP)
    assert btb.find_entry(0x4000) is None


def test_indirect_target_is_learned():
    btb = BasicBTB()
    btb.update(0x8000, 0x9000, True, BranchType.INDIRECT)
    target, always_taken = btb.predict(0x8000, BranchType.INDIRECT)
    assert target == 0x9000
    assert always_taken is True


def test_return_uses_call_address_plus_default_size():
    btb = BasicBTB()
    btb.predict(0x1000, BranchType.DIRECT_CALL)
    assert btb.predict(0x2000, BranchType.RETURN) == (0x1000 + 4, True)


def test_return_recalibrates_call_size():
    btb = BasicBTB()
    btb.predict(0x1000, BranchType.DIRECT_CALL)
    btb.predict(0x2000, BranchType.RETURN)
    btb.update(0x2000, 0x1005, True, BranchType.RETURN)
    assert btb.call_size(0x1000) == 5


def test_far_return_keeps_call_size():
    btb = BasicBTB()
    btb.predict(0x1000, BranchType.DIRECT_CALL)
    btb.update(0x2000, 0x3000, True, BranchType.RETURN)
    assert btb.call_size(0x1000) == 4


def test_nested_calls_return_in_reverse_order():
    btb = BasicBTB()
    btb.predict(0x1000, BranchType.DIRECT_CALL)
    btb.predict(0x2000, BranchType.DIRECT_CALL)
    first, _ = btb.predict(0x3000, BranchType.RETURN)
    btb.update(0x3000, 0x2004, True, BranchType.RETURN)
    second, _ = btb.predict(0x3100, BranchType.RETURN)
    assert (first, second) == (0x2004, 0x1004)


def test_set_index_aliases_every_4096_bytes():
    btb = BasicBTB()
    for ip in (0x10, 0x1234, 0xABCDEF0):
        assert btb.set_index(ip) == btb.set_index(ip + 4096)


def test_set_holds_at_most_eight_entries():
    btb = BasicBTB()
    ips = [k * 4096 for k in range(1, 13)]
    for ip in ips:
        btb.update(ip, ip + 0x100, True, BranchType.DIRECT_JUMP)
    found = [ip for ip in ips if btb.find_entry(ip) is not None]
    assert 0 < len(found) <= 8
    assert ips[-1] in found


def test_initialize_resets_state():
    btb = BasicBTB()
    btb.update(0x4000, 0x5000, True, BranchType.CONDITIONAL)
    btb.initialize()
    assert btb.find_entry(0x4000) is None