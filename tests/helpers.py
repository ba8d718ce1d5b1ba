import random
from typing import Dict, Iterable, List, Optional

import numpy as np

from morris.board import AI, HUMAN, new_board
from morris.game import ClassicGame, SimpleGame


def make_board(human: Iterable[int] = (), ai: Iterable[int] = ()) -> np.ndarray:
    board = new_board()
    for cell in human:
        board[cell] = HUMAN
    for cell in ai:
        board[cell] = AI
    return board


def random_simple_game(seed: int, plies: int, pieces_per_player: int = 9) -> Optional[SimpleGame]:
    """Random playout; None when it ended before `plies`."""
    rng = random.Random(seed)
    game = SimpleGame(pieces_per_player=pieces_per_player, first_player=AI)
    for _ in range(plies):
        moves = game.legal_moves()
        if not moves:
            return None
        game.play(rng.choice(moves))
    return None if game.is_over() else game


def random_classic_game(seed: int, plies: int) -> Optional[ClassicGame]:
    rng = random.Random(seed)
    game = ClassicGame(first_player=AI, move_limit=1000)
    for _ in range(plies):
        moves = game.legal_moves()
        if not moves:
            return None
        game.play(rng.choice(moves))
    return None if game.is_over() else game


def classic_position(human: Iterable[int], ai: Iterable[int],
                     human_hand: int = 0, ai_hand: int = 0, current: int = AI) -> ClassicGame:
    """ClassicGame set up on an arbitrary position."""
    human, ai = tuple(human), tuple(ai)
    game = ClassicGame(first_player=current, move_limit=1000)
    game.board = make_board(human, ai)
    game.counts[HUMAN].to_place = human_hand
    game.counts[HUMAN].on_board = len(human)
    game.counts[AI].to_place = ai_hand
    game.counts[AI].on_board = len(ai)
    return game


def hands(game: ClassicGame) -> Dict[str, List[int]]:
    """Counters as the per-player lists the search engine takes."""
    return {
        'to_place': [0, game.counts[HUMAN].to_place, game.counts[AI].to_place],
        'on_board': [0, game.counts[HUMAN].on_board, game.counts[AI].on_board],
    }
