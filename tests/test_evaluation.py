import random

import numpy as np

from helpers import make_board
from morris.board import AI, EMPTY, HUMAN
from morris.evaluation import (
    CLASSIC_WEIGHTS, DRAW_SCORE, HEURISTIC_CAP, SIMPLE_WEIGHTS, WIN_SCORE, Evaluator,
    is_forced_win, terminal_score, win_score,
)


def test_faster_wins_score_higher_and_faster_losses_lower() -> None:
    wins = [terminal_score(AI, AI, d) for d in (3, 2, 1, 0, -1, -2)]
    assert wins == sorted(wins, reverse=True)
    assert all(w > HEURISTIC_CAP for w in wins)

    losses = [terminal_score(HUMAN, AI, d) for d in (3, 2, 1, 0, -1, -2)]
    assert losses == sorted(losses)
    assert all(score < -HEURISTIC_CAP for score in losses)

    assert terminal_score(None, AI, 4) == DRAW_SCORE
    assert win_score(0) == WIN_SCORE
    assert is_forced_win(win_score(-2)) and not is_forced_win(HEURISTIC_CAP)
    assert not is_forced_win(terminal_score(HUMAN, AI, 3))


def test_weight_ordering() -> None:
    for weights in (SIMPLE_WEIGHTS, CLASSIC_WEIGHTS):
        assert weights['setup'] > weights['double_setup'] > weights['strategic']
        assert weights['double_setup'] > weights['mobility']
    assert win_score(-2) > HEURISTIC_CAP


def test_setups_count_for_their_owner() -> None:
    ev = Evaluator(AI)
    own = make_board(human=(22,), ai=(0, 1))
    theirs = make_board(human=(0, 1), ai=(22,))
    assert ev.evaluate_simple(own) > 0
    assert ev.evaluate_simple(theirs) < 0
    # Same position seen from the other side flips the sign
    assert Evaluator(HUMAN).evaluate_simple(own) == -ev.evaluate_simple(own)


def test_double_setup_beats_two_separate_pieces() -> None:
    ev = Evaluator(AI)
    # 2 completes (0,1,2) and (2,14,23) at once
    fork = make_board(human=(10, 16), ai=(0, 1, 14, 23))
    split = make_board(human=(10, 16), ai=(0, 1, 19, 7))
    assert ev.evaluate_simple(fork) > ev.evaluate_simple(split)


def test_heuristics_stay_below_the_cap() -> None:
    rng = random.Random(4)
    ev = Evaluator(AI)
    for _ in range(50):
        board = np.array([rng.choice((EMPTY, EMPTY, HUMAN, AI)) for _ in range(24)], dtype=np.int8)
        on_board = [0, int((board == HUMAN).sum()), int((board == AI).sum())]
        score = ev.evaluate_simple(board)
        assert -HEURISTIC_CAP <= score <= HEURISTIC_CAP
        classic = ev.evaluate_classic(board, [0, 0, 0], on_board)
        assert -HEURISTIC_CAP <= classic <= HEURISTIC_CAP


def test_classic_material_and_mobility() -> None:
    ev = Evaluator(AI)
    board = make_board(human=(0, 23), ai=(4, 10, 13))
    ahead = ev.evaluate_classic(board, [0, 0, 0], [0, 2, 3])
    assert ahead > 0

    # Blocked pieces are worth less than free ones
    boxed = make_board(human=(1, 9, 3, 5, 7, 14), ai=(0, 4, 2))
    free = make_board(human=(1, 9, 3, 5, 7, 14), ai=(16, 19, 22))
    assert ev.mobility(boxed, AI, 0, 4) == 0
    assert ev.mobility(free, AI, 0, 4) == 12


def test_flying_mobility_counts_every_empty_cell() -> None:
    ev = Evaluator(AI)
    board = make_board(human=(1, 2, 3, 4), ai=(0, 9, 23))
    empties = int((board == EMPTY).sum())
    assert ev.mobility(board, AI, 0, 3) == 3 * 2 * empties
