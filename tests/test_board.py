import numpy as np
import pytest

from helpers import make_board
from morris.board import (
    AI, EMPTY, HUMAN, MILLS, STANDARD_TOPOLOGY, BoardTopology, InvalidPositionError, Phase,
    PieceCounts, Placement, Relocation, check_winner, forms_mill, game_phase, in_mill,
    move_from_dict, parse_counts, removable_pieces, to_board,
)


def test_standard_topology_shape() -> None:
    topo = STANDARD_TOPOLOGY
    assert len(topo.lines) == 16
    assert topo.line_array.shape == (16, 3)
    assert topo.incidence.shape == (24, 16)
    # Every point of the standard board lies on exactly two lines
    assert (topo.line_count == 2).all()
    assert topo.strategic == (1, 4, 7, 9, 10, 11, 12, 13, 14, 16, 19, 22)
    assert (topo.adjacency_matrix == topo.adjacency_matrix.T).all()


def test_custom_lines_and_adjacency_dict() -> None:
    topo = BoardTopology.from_inputs(lines=[[0, 1, 2], [3, 4, 5]],
                                     adjacency={str(c): [] for c in range(24)})
    assert topo.lines == ((0, 1, 2), (3, 4, 5))
    assert topo.adjacency[0] == ()
    assert BoardTopology.from_inputs() is STANDARD_TOPOLOGY


@pytest.mark.parametrize("lines", [[], [[0, 1]], [[0, 0, 1]], [[0, 1, 24]], [[0, 1, None]]])
def test_malformed_lines_are_rejected(lines) -> None:
    with pytest.raises(InvalidPositionError):
        BoardTopology.from_inputs(lines=lines)


def test_to_board_normalises_none_and_validates() -> None:
    cells = [None] * 24
    cells[5] = 1
    cells[7] = 2
    board = to_board(cells)
    assert board.dtype == np.int8
    assert board[5] == HUMAN and board[7] == AI and board[0] == EMPTY

    for bad in ([0] * 23, [0] * 25, [3] + [0] * 23, [300] + [0] * 23, ['x'] + [0] * 23, None):
        with pytest.raises(InvalidPositionError):
            to_board(bad)


def test_check_winner_and_mills() -> None:
    board = make_board(human=(3, 4), ai=(0, 1, 2))
    assert check_winner(board) == AI
    assert in_mill(board, 1) is True
    assert in_mill(board, 3) is False
    assert check_winner(make_board(human=(0, 1), ai=(2,))) is None


def test_forms_mill_ignores_the_vacated_source() -> None:
    board = make_board(ai=(0, 1, 14))
    assert forms_mill(board, 2, AI) is True
    assert forms_mill(board, 2, AI, source=1) is False
    assert forms_mill(board, 2, AI, source=14) is True
    assert forms_mill(board, 2, HUMAN) is False


def test_removable_pieces_skip_mills_unless_all_are_in_mills() -> None:
    board = make_board(human=(0, 1, 2, 23))
    assert removable_pieces(board, HUMAN) == [23]

    only_mill = make_board(human=(0, 1, 2))
    assert removable_pieces(only_mill, HUMAN) == [0, 1, 2]


def test_parse_counts_accepts_str_keys_and_front_end_names() -> None:
    board = make_board(human=(0,), ai=(5, 6))
    counts = parse_counts({'1': {'piecesLeftToPlace': 8, 'piecesOnBoard': 1},
                           '2': {'to_place': 7}}, board)
    assert counts[HUMAN] == PieceCounts(8, 1)
    assert counts[AI] == PieceCounts(7, 2)


@pytest.mark.parametrize("raw", [
    None,
    {1: {'to_place': 9, 'on_board': 1}, 2: {'to_place': 7}},   # 10 pieces
    {1: {'to_place': 8, 'on_board': 3}, 2: {'to_place': 7}},   # board shows 1
    {1: {'to_place': -1}, 2: {'to_place': 7}},
    {1: {'to_place': 8}},
])
def test_parse_counts_rejects_inconsistent_counts(raw) -> None:
    board = make_board(human=(0,), ai=(5, 6))
    with pytest.raises(InvalidPositionError):
        parse_counts(raw, board)


def test_game_phase() -> None:
    counts = {HUMAN: PieceCounts(1, 5), AI: PieceCounts(0, 3)}
    assert game_phase(counts, AI) == Phase.PLACING
    counts[HUMAN] = PieceCounts(0, 6)
    assert game_phase(counts, AI) == Phase.FLYING
    assert game_phase(counts, HUMAN) == Phase.MOVING


def test_moves_compare_without_mill_flag_and_round_trip_dicts() -> None:
    assert Placement(3, creates_mill=True) == Placement(3)
    assert Placement(3, 4) != Placement(3)
    assert Relocation(1, 2) != Placement(2)

    move = Relocation(14, 2, remove=9)
    assert move.to_dict() == {'from': 14, 'to': 2, 'remove': 9}
    assert move_from_dict(move.to_dict()) == move
    assert move_from_dict({'from': None, 'to': 5}) == Placement(5)
    assert Placement(5).with_removal(7) == Placement(5, 7)


def test_mills_table_matches_topology() -> None:
    assert STANDARD_TOPOLOGY.lines == MILLS
