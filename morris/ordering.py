"""
Nine Men's Morris - Move Ordering
Sorts candidate moves so alpha-beta sees the strongest replies first.

Priority (for the side to move):
1. Completes own mill
2. Blocks an opponent mill (fills the gap of a setup)
3. Creates own setup (two in a line, third cell empty)
4. Blocks an opponent setup
5. Strategic cells, then cells on many lines
6. Shallow 1-ply evaluation of the resulting position (tie-breaker)
"""

from typing import List, Sequence

import numpy as np

from morris.board import (
    EMPTY, BoardTopology, ClassicMove, opponent_of,
)
from morris.evaluation import Evaluator


class MoveOrderer:
    """Move ordering for better alpha-beta pruning. Never mutates the caller's board."""

    # Move score bonuses
    MILL_BONUS = 10_000
    BLOCK_MILL_BONUS = 8_000
    SETUP_BONUS = 1_000
    BLOCK_SETUP_BONUS = 300
    STRATEGIC_BONUS = 100
    LINE_BONUS = 10

    # Anything at or above this is a tactical (quiescence) move
    TACTICAL_THRESHOLD = SETUP_BONUS

    def __init__(self, evaluator: Evaluator, topology: BoardTopology):
        self.evaluator = evaluator
        self.topology = topology

    def destination_score(self, scratch: np.ndarray, to: int, mover: int) -> int:
        """Score a destination on a board where `mover` already stands on `to`."""
        opponent = opponent_of(mover)
        score = 0
        for line in self.topology.lines_per_cell[to]:
            mine = 0
            theirs = 0
            for cell in line:
                owner = scratch[cell]
                if owner == mover:
                    mine += 1
                elif owner == opponent:
                    theirs += 1
            if mine == 3:
                score += self.MILL_BONUS
            elif theirs == 2:
                score += self.BLOCK_MILL_BONUS
            elif mine == 2 and theirs == 0:
                score += self.SETUP_BONUS
            elif mine == 1 and theirs == 1:
                score += self.BLOCK_SETUP_BONUS

        if self.topology.strategic_mask[to]:
            score += self.STRATEGIC_BONUS
        score += self.LINE_BONUS * int(self.topology.line_count[to])
        return score

    def _mover_view(self, score: float, mover: int) -> float:
        return score if mover == self.evaluator.player else -score

    # ------------------------------------------------------------------
    # Simple model
    # ------------------------------------------------------------------

    def _score_simple(self, board: np.ndarray, moves: Sequence[int], mover: int,
                      shallow: bool) -> List[tuple]:
        scratch = board.copy()
        scored = []
        for move in moves:
            scratch[move] = mover
            priority = self.destination_score(scratch, move, mover)
            value = 0.0
            if shallow:
                value = self._mover_view(self.evaluator.evaluate_simple(scratch), mover)
            scratch[move] = EMPTY
            scored.append((priority, value, move))
        return scored

    def order_simple(self, board: np.ndarray, moves: Sequence[int], mover: int,
                     shallow: bool = True) -> List[int]:
        """Best moves for `mover` first; ties keep generator order."""
        if len(moves) <= 1:
            return list(moves)
        scored = self._score_simple(board, moves, mover, shallow)
        scored.sort(key=lambda s: (s[0], s[1]), reverse=True)
        return [m for _, _, m in scored]

    def tactical_simple(self, board: np.ndarray, moves: Sequence[int], mover: int) -> List[int]:
        """Only mill / block / setup placements, best first."""
        scored = [s for s in self._score_simple(board, moves, mover, False)
                  if s[0] >= self.TACTICAL_THRESHOLD]
        scored.sort(key=lambda s: s[0], reverse=True)
        return [m for _, _, m in scored]

    # ------------------------------------------------------------------
    # Classic model
    # ------------------------------------------------------------------

    def _score_classic(self, board: np.ndarray, moves: Sequence[ClassicMove], mover: int,
                       to_place: Sequence[int], on_board: Sequence[int],
                       shallow: bool) -> List[tuple]:
        scratch = board.copy()
        hand = list(to_place)
        placed = list(on_board)
        scored = []
        for move in moves:
            if move.source is None:
                hand[mover] -= 1
                placed[mover] += 1
            else:
                scratch[move.source] = EMPTY
            scratch[move.to] = mover

            priority = self.destination_score(scratch, move.to, mover)
            value = 0.0
            if shallow:
                value = self._mover_view(
                    self.evaluator.evaluate_classic(scratch, hand, placed), mover)

            scratch[move.to] = EMPTY
            if move.source is None:
                hand[mover] += 1
                placed[mover] -= 1
            else:
                scratch[move.source] = mover
            scored.append((priority, value, move))
        return scored

    def order_classic(self, board: np.ndarray, moves: Sequence[ClassicMove], mover: int,
                      to_place: Sequence[int], on_board: Sequence[int],
                      shallow: bool = True) -> List[ClassicMove]:
        if len(moves) <= 1:
            return list(moves)
        scored = self._score_classic(board, moves, mover, to_place, on_board, shallow)
        scored.sort(key=lambda s: (s[0], s[1]), reverse=True)
        return [m for _, _, m in scored]

    def tactical_classic(self, board: np.ndarray, moves: Sequence[ClassicMove], mover: int,
                         to_place: Sequence[int], on_board: Sequence[int]) -> List[ClassicMove]:
        scored = [s for s in self._score_classic(board, moves, mover, to_place, on_board, False)
                  if s[0] >= self.TACTICAL_THRESHOLD]
        scored.sort(key=lambda s: s[0], reverse=True)
        return [m for _, _, m in scored]

    def order_removals(self, board: np.ndarray, cells: Sequence[int], victim: int) -> List[int]:
        """
        Order opponent pieces to take after a mill: pieces holding up a
        setup first (removing them kills a threat), then strategic cells,
        then pieces with more free neighbours.
        """
        if len(cells) <= 1:
            return list(cells)
        scored = []
        for cell in cells:
            threats = 0
            for line in self.topology.lines_per_cell[cell]:
                owners = [board[c] for c in line]
                if owners.count(victim) == 2 and owners.count(EMPTY) == 1:
                    threats += 1
            free = sum(1 for n in self.topology.adjacency[cell] if board[n] == EMPTY)
            scored.append((threats, bool(self.topology.strategic_mask[cell]), free, cell))
        scored.sort(key=lambda s: s[:3], reverse=True)
        return [s[3] for s in scored]
