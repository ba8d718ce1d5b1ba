from morris.transposition import TranspositionTable, TTEntryType, bound_type


def test_bound_type_classification() -> None:
    assert bound_type(-5, alpha=0, beta=10) == TTEntryType.UPPER
    assert bound_type(0, alpha=0, beta=10) == TTEntryType.UPPER
    assert bound_type(10, alpha=0, beta=10) == TTEntryType.LOWER
    assert bound_type(5, alpha=0, beta=10) == TTEntryType.EXACT


def test_shallower_entries_are_not_trusted() -> None:
    tt = TranspositionTable()
    tt.store(b'k', depth=2, score=7.0, entry_type=TTEntryType.EXACT, best_move=3)
    assert tt.lookup(b'k', 3, float('-inf'), float('inf')) is None
    entry = tt.lookup(b'k', 2, float('-inf'), float('inf'))
    assert entry is not None and entry.score == 7.0 and entry.best_move == 3
    assert tt.lookup(b'k', 1, 0, 1).score == 7.0


def test_bounds_are_used_only_outside_the_window() -> None:
    tt = TranspositionTable()
    tt.store(b'lo', 4, 50.0, TTEntryType.LOWER)
    tt.store(b'hi', 4, -50.0, TTEntryType.UPPER)

    assert tt.lookup(b'lo', 4, 0, 40) is not None
    assert tt.lookup(b'lo', 4, 0, 60) is None
    assert tt.lookup(b'hi', 4, -40, 0) is not None
    assert tt.lookup(b'hi', 4, -60, 0) is None
    assert tt.hits == 2 and tt.misses == 2


def test_deeper_entries_are_never_downgraded() -> None:
    tt = TranspositionTable()
    tt.store(b'k', 5, 1.0, TTEntryType.EXACT)
    tt.store(b'k', 3, 2.0, TTEntryType.EXACT)
    assert tt.table.get(b'k').score == 1.0
    tt.store(b'k', 5, 3.0, TTEntryType.LOWER)
    assert tt.table.get(b'k').score == 3.0


def test_capacity_skips_new_keys_and_clear_resets() -> None:
    tt = TranspositionTable(max_entries=1)
    tt.store(b'a', 1, 1.0, TTEntryType.EXACT)
    tt.store(b'b', 1, 1.0, TTEntryType.EXACT)
    assert len(tt) == 1 and tt.table.get(b'b') is None
    tt.store(b'a', 2, 4.0, TTEntryType.EXACT)
    assert tt.table.get(b'a').depth == 2

    tt.clear()
    assert len(tt) == 0
    assert tt.stats()['stores'] == 0
