import pytest

from helpers import make_board
from morris.agent import MorrisAgent
from morris.board import AI, HUMAN, Placement, Relocation
from morris.main import SYMBOLS, main, parse_classic_input, play_one, render_board, run_selfplay


def test_render_board_places_symbols() -> None:
    text = render_board(make_board(human=(0,), ai=(23,)))
    rows = text.split('\n')
    assert len(rows) == 13
    assert rows[0].strip().startswith(SYMBOLS[HUMAN])
    assert rows[-1].strip().endswith(SYMBOLS[AI])
    assert text.count('.') == 22


def test_parse_classic_input() -> None:
    assert parse_classic_input('5', placing=True) == Placement(5)
    assert parse_classic_input('5, 9', placing=True) == Placement(5, 9)
    assert parse_classic_input('14 2 9', placing=False) == Relocation(14, 2, 9)
    for raw, placing in (('1 2 3', True), ('4', False), ('', True)):
        with pytest.raises(ValueError):
            parse_classic_input(raw, placing)


def test_play_one_finishes() -> None:
    agents = {HUMAN: MorrisAgent('easy', player=HUMAN, seed=1),
              AI: MorrisAgent('medium', player=AI, seed=2)}
    assert play_one('classic', agents, HUMAN, 9, 60) in (HUMAN, AI, None)
    assert play_one('simple', agents, AI, 9, 60) in (HUMAN, AI, None)


def test_selfplay_counts_every_game(capsys) -> None:
    results = run_selfplay('simple', 'easy', 'medium', games=3, pieces_per_player=9,
                           move_limit=60, seed=0)
    assert sum(results.values()) == 3
    assert 'Game 3' in capsys.readouterr().out


def test_info_mode(capsys) -> None:
    main(['info'])
    out = capsys.readouterr().out
    assert 'MAXIMAL' in out and 'BASIC' in out
