import pytest

from helpers import classic_position, make_board, random_classic_game
from morris.board import AI, EMPTY, HUMAN, STANDARD_TOPOLOGY, Placement, Relocation
from morris.movegen import classic_moves, has_classic_move, is_flying, simple_moves


def test_simple_moves_are_the_empty_cells() -> None:
    board = make_board(human=(0, 5), ai=(23,))
    moves = simple_moves(board)
    assert moves == [c for c in range(24) if c not in (0, 5, 23)]


def test_placements_flag_mill_completion() -> None:
    board = make_board(human=(9,), ai=(0, 1))
    moves = classic_moves(board, AI, to_place=5, on_board=2)
    assert all(isinstance(m, Placement) for m in moves)
    assert len(moves) == 21
    assert [m.to for m in moves if m.creates_mill] == [2]


def test_relocations_follow_adjacency() -> None:
    board = make_board(human=(1, 9, 3), ai=(0, 4, 10, 22))
    moves = classic_moves(board, AI, to_place=0, on_board=4)
    assert all(isinstance(m, Relocation) for m in moves)
    # Piece on 0 is boxed in by 1 and 9
    assert not [m for m in moves if m.source == 0]
    assert {(m.source, m.to) for m in moves if m.source == 4} == {(4, 5), (4, 7)}


def test_flying_reaches_every_empty_cell() -> None:
    board = make_board(human=(1, 2, 5, 6), ai=(0, 9, 23))
    assert is_flying(0, 3) is True
    moves = classic_moves(board, AI, to_place=0, on_board=3)
    empties = 24 - 7
    assert len(moves) == 3 * empties
    assert Relocation(23, 21) in moves
    assert [m for m in moves if m.creates_mill] == [Relocation(23, 21)]


def test_blocked_player_has_no_move() -> None:
    # AI on 0 is surrounded; human has room
    board = make_board(human=(1, 9), ai=(0,))
    assert has_classic_move(board, AI, 0, 1) is False
    assert has_classic_move(board, HUMAN, 0, 2) is True
    assert has_classic_move(board, AI, 1, 1) is True


@pytest.mark.parametrize("seed", range(6))
def test_generated_moves_are_sound_on_reachable_positions(seed: int) -> None:
    game = random_classic_game(seed, plies=24)
    if game is None:
        pytest.skip("random playout ended early")

    player = game.current
    c = game.counts[player]
    flying = is_flying(c.to_place, c.on_board)
    for move in classic_moves(game.board, player, c.to_place, c.on_board, STANDARD_TOPOLOGY):
        assert game.board[move.to] == EMPTY
        if move.source is not None:
            assert c.to_place == 0
            assert game.board[move.source] == player
            if not flying:
                assert move.to in STANDARD_TOPOLOGY.adjacency[move.source]
        else:
            assert c.to_place > 0


def test_generator_does_not_mutate_board() -> None:
    game = classic_position(human=(0, 1), ai=(3, 4), human_hand=7, ai_hand=7)
    before = game.board.copy()
    classic_moves(game.board, AI, 7, 2)
    assert (game.board == before).all()
