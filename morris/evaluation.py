"""
Nine Men's Morris - Position Evaluation
Static scores from the point of view of the maximizing (engine) player.

Terminal scores dominate everything: a win is worth WIN_SCORE plus a bonus
per remaining ply of search depth, so faster wins score higher and faster
losses lower. Heuristic scores are clamped to HEURISTIC_CAP.
"""

from typing import Dict, Optional, Sequence

import numpy as np

from morris.board import (
    AI, EMPTY, STANDARD_TOPOLOGY, BoardTopology, PIECES_PER_PLAYER, opponent_of,
)
from morris.movegen import is_flying


WIN_SCORE = 100_000
DEPTH_BONUS = 1_000
DRAW_SCORE = 0
HEURISTIC_CAP = WIN_SCORE // 2


# Placement-only game: the first mill ends the game, so lines are everything
SIMPLE_WEIGHTS = {
    'setup': 500,           # two own pieces + empty cell
    'double_setup': 200,    # per line, when one empty cell completes >= 2 setups
    'open_line': 160,       # one own piece + two empty cells
    'material': 5,
    'strategic': 15,
    'mobility': 4,          # per open line through an empty cell
    'aggression': 0.25,     # phase factor = 1 + aggression * (1 - pieces / max)
    'endgame_bonus': 0,     # counts only differ by move parity here
    'endgame_pieces': 6,
}

CLASSIC_WEIGHTS = {
    'setup': 500,
    'double_setup': 200,
    'open_line': 40,
    'closed_mill': 150,
    'material': 1000,       # pieces in play (board + hand); a piece outweighs a setup
    'strategic': 15,
    'mobility': 6,          # per reachable empty cell, times its line count
    'aggression': 0.5,
    'endgame_bonus': 400,
    'endgame_pieces': 10,
}


def win_score(depth: int) -> float:
    """Score of a win found with `depth` plies of search left (negative in quiescence)."""
    return float(WIN_SCORE + depth * DEPTH_BONUS)


def terminal_score(winner: Optional[int], player: int, depth: int) -> float:
    if winner is None:
        return float(DRAW_SCORE)
    score = win_score(depth)
    return score if winner == player else -score


def is_forced_win(score: float) -> bool:
    """Only terminal scores exceed the heuristic cap."""
    return score > HEURISTIC_CAP


class Evaluator:
    """
    Heuristic evaluation for both game models.

    Combines line control (setups, double setups, open lines), material,
    strategic cells and mobility by summation, then amplifies the sum by a
    phase factor that grows as pieces leave the game.
    """

    def __init__(self, player: int = AI,
                 topology: BoardTopology = STANDARD_TOPOLOGY,
                 simple_weights: Optional[Dict] = None,
                 classic_weights: Optional[Dict] = None,
                 pieces_per_player: int = PIECES_PER_PLAYER):
        self.player = player
        self.opponent = opponent_of(player)
        self.topology = topology
        self.simple_weights = dict(SIMPLE_WEIGHTS, **(simple_weights or {}))
        self.classic_weights = dict(CLASSIC_WEIGHTS, **(classic_weights or {}))
        self.pieces_per_player = pieces_per_player

    # ------------------------------------------------------------------
    # Line statistics
    # ------------------------------------------------------------------

    def line_counts(self, board: np.ndarray):
        """(own, opp, empty) piece counts per winning line."""
        cells = board[self.topology.line_array]
        own = np.count_nonzero(cells == self.player, axis=1)
        opp = np.count_nonzero(cells == self.opponent, axis=1)
        return own, opp, 3 - own - opp

    def _double_setups(self, setups: np.ndarray, empty_mask: np.ndarray) -> int:
        """Setup lines completed through empty cells that finish two or more at once."""
        per_cell = self.topology.incidence @ setups.astype(np.int16)
        hits = per_cell[empty_mask & (per_cell >= 2)]
        return int(hits.sum())

    def _line_score(self, board: np.ndarray, weights: Dict) -> float:
        own, opp, empty = self.line_counts(board)
        empty_mask = board == EMPTY

        own_setup = (own == 2) & (empty == 1)
        opp_setup = (opp == 2) & (empty == 1)
        score = weights['setup'] * (int(own_setup.sum()) - int(opp_setup.sum()))

        score += weights['double_setup'] * (
            self._double_setups(own_setup, empty_mask) - self._double_setups(opp_setup, empty_mask)
        )

        own_open = (own == 1) & (empty == 2)
        opp_open = (opp == 1) & (empty == 2)
        score += weights['open_line'] * (int(own_open.sum()) - int(opp_open.sum()))

        if 'closed_mill' in weights:
            score += weights['closed_mill'] * (int((own == 3).sum()) - int((opp == 3).sum()))
        return score

    def _strategic_score(self, board: np.ndarray, weights: Dict) -> float:
        strategic = board[self.topology.strategic_mask]
        return weights['strategic'] * (
            int(np.count_nonzero(strategic == self.player))
            - int(np.count_nonzero(strategic == self.opponent))
        )

    def _finish(self, score: float, own_pieces: int, opp_pieces: int,
                pieces_in_play: int, max_pieces: int, weights: Dict) -> float:
        """Endgame bonus, phase scaling and clamping."""
        remaining = min(max(pieces_in_play, 0), max_pieces)
        if remaining <= weights['endgame_pieces'] and own_pieces != opp_pieces:
            score += weights['endgame_bonus'] if own_pieces > opp_pieces else -weights['endgame_bonus']

        factor = 1.0 + weights['aggression'] * (1.0 - remaining / max_pieces)
        score *= factor
        return float(max(-HEURISTIC_CAP, min(HEURISTIC_CAP, score)))

    # ------------------------------------------------------------------
    # Simple model
    # ------------------------------------------------------------------

    def evaluate_simple(self, board: np.ndarray) -> float:
        """Static score of a placement-only position without a mill on it."""
        w = self.simple_weights
        score = self._line_score(board, w)

        own_pieces = int(np.count_nonzero(board == self.player))
        opp_pieces = int(np.count_nonzero(board == self.opponent))
        score += w['material'] * (own_pieces - opp_pieces)
        score += self._strategic_score(board, w)

        # Mobility: open lines (no enemy piece) through every empty cell
        own, opp, _ = self.line_counts(board)
        empty_rows = self.topology.incidence[board == EMPTY]
        own_reach = int((empty_rows @ (opp == 0).astype(np.int16)).sum())
        opp_reach = int((empty_rows @ (own == 0).astype(np.int16)).sum())
        score += w['mobility'] * (own_reach - opp_reach)

        return self._finish(score, own_pieces, opp_pieces,
                            own_pieces + opp_pieces, 2 * self.pieces_per_player, w)

    # ------------------------------------------------------------------
    # Classic model
    # ------------------------------------------------------------------

    def mobility(self, board: np.ndarray, player: int, to_place: int, on_board: int) -> int:
        """Reachable empty cells summed over pieces, each weighted by its line count."""
        weighted_empty = np.where(board == EMPTY, self.topology.line_count, 0)
        if is_flying(to_place, on_board):
            return on_board * int(weighted_empty.sum())
        own_rows = self.topology.adjacency_matrix[board == player]
        return int((own_rows @ weighted_empty).sum())

    def evaluate_classic(self, board: np.ndarray, to_place: Sequence[int],
                         on_board: Sequence[int]) -> float:
        """
        Static score of a classic position. `to_place` / `on_board` are indexed
        by player number (index 0 unused).
        """
        w = self.classic_weights
        p, o = self.player, self.opponent
        score = self._line_score(board, w)

        own_pieces = on_board[p] + to_place[p]
        opp_pieces = on_board[o] + to_place[o]
        score += w['material'] * (own_pieces - opp_pieces)
        score += self._strategic_score(board, w)
        score += w['mobility'] * (
            self.mobility(board, p, to_place[p], on_board[p])
            - self.mobility(board, o, to_place[o], on_board[o])
        )

        return self._finish(score, own_pieces, opp_pieces,
                            own_pieces + opp_pieces, 2 * PIECES_PER_PLAYER, w)
