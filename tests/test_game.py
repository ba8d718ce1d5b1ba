import pytest

from helpers import classic_position, hands, random_classic_game
from morris.board import AI, EMPTY, HUMAN, Phase, Placement, Relocation
from morris.game import ClassicGame, IllegalMoveError, SimpleGame
from morris.minimax import ClassicSearch


def test_simple_game_first_line_wins() -> None:
    game = SimpleGame()
    for cell in (0, 3, 1, 4, 2):
        game.play(cell)
    assert game.winner == HUMAN
    assert game.is_over() and not game.is_draw
    assert game.legal_moves() == []
    with pytest.raises(IllegalMoveError):
        game.play(5)


def test_simple_game_draws_when_pieces_run_out() -> None:
    game = SimpleGame(pieces_per_player=3)
    for cell in (3, 0, 5, 4, 13, 20):
        game.play(cell)
    assert game.winner is None
    assert game.placed(HUMAN) == 3 and game.current == HUMAN
    assert game.is_draw and game.is_over()


def test_simple_game_rejects_occupied_cells() -> None:
    game = SimpleGame(first_player=AI)
    game.play(7)
    with pytest.raises(IllegalMoveError):
        game.play(7)
    assert game.current == HUMAN
    assert game.board_list()[7] == AI


def test_classic_mill_requires_a_removal() -> None:
    game = classic_position(human=(0, 1, 23), ai=(3, 4), human_hand=5, ai_hand=5)
    assert game.phase == Phase.PLACING
    with pytest.raises(IllegalMoveError):
        game.play(Placement(5))

    game.play(Placement(5, remove=0))
    assert game.board[0] == EMPTY and game.board[5] == AI
    assert game.counts_dict() == {HUMAN: {'to_place': 5, 'on_board': 2},
                                  AI: {'to_place': 4, 'on_board': 3}}
    assert game.current == HUMAN and game.winner is None


def test_classic_pieces_in_mills_are_protected() -> None:
    game = classic_position(human=(0, 1, 2, 23), ai=(3, 4), human_hand=4, ai_hand=5)
    removals = [m.remove for m in game.legal_moves() if m.to == 5]
    assert removals == [23]


def test_classic_win_by_reducing_to_two_pieces() -> None:
    game = classic_position(human=(9, 19, 12), ai=(0, 1, 14, 20))
    game.play(Relocation(14, 2, remove=9))
    assert game.winner == AI
    assert game.is_over()
    assert game.legal_moves() == []


def test_classic_win_by_blocking_every_piece() -> None:
    # Human corners are hemmed in once 22 is taken
    game = classic_position(human=(0, 2, 21, 23), ai=(1, 9, 14, 19), current=AI)
    game.play(Relocation(19, 22))
    assert game.winner == AI

    open_game = classic_position(human=(0, 2, 21, 23), ai=(1, 9, 14, 19), current=AI)
    open_game.play(Relocation(19, 16))
    assert open_game.winner is None
    assert {m.source for m in open_game.legal_moves()} == {21, 23}


def test_classic_move_limit_draws() -> None:
    game = ClassicGame(move_limit=2)
    game.play(Placement(0))
    game.play(Placement(23))
    assert game.is_draw and game.winner is None
    assert game.legal_moves() == []


@pytest.mark.parametrize("seed", range(5))
def test_game_and_search_agree_on_legal_moves(seed: int) -> None:
    game = random_classic_game(seed, plies=22)
    if game is None:
        pytest.skip("random playout ended early")
    engine = ClassicSearch(game.current)
    counts = hands(game)
    engine.set_counts(counts['to_place'], counts['on_board'])
    assert set(engine.legal_moves(game.board, game.current)) == set(game.legal_moves())
