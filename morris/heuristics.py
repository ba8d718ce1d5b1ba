"""
Nine Men's Morris - Instant Heuristics
One-ply rules used by the BASIC tier and by the win / block short-circuits
of the search tiers.
"""

import random
from typing import List, Optional, Set

import numpy as np

from morris.board import (
    EMPTY, STANDARD_TOPOLOGY, BoardTopology, ClassicMove, opponent_of,
)
from morris.movegen import classic_moves


def winning_cells(board: np.ndarray, player: int,
                  topology: BoardTopology = STANDARD_TOPOLOGY) -> List[int]:
    """Empty cells that complete a line for `player` (line order, no duplicates)."""
    cells = []
    for line in topology.lines:
        owners = [board[c] for c in line]
        if owners.count(player) == 2 and owners.count(EMPTY) == 1:
            gap = line[owners.index(EMPTY)]
            if gap not in cells:
                cells.append(gap)
    return cells


def find_winning_cell(board: np.ndarray, player: int,
                      topology: BoardTopology = STANDARD_TOPOLOGY) -> Optional[int]:
    cells = winning_cells(board, player, topology)
    return cells[0] if cells else None


def _setups_through(board: np.ndarray, cell: int, player: int, topology: BoardTopology) -> int:
    """Lines through empty `cell` holding exactly one `player` piece and no opponent piece."""
    count = 0
    for line in topology.lines_per_cell[cell]:
        owners = [board[c] for c in line]
        if owners.count(player) == 1 and owners.count(EMPTY) == 2:
            count += 1
    return count


def find_double_setup_cell(board: np.ndarray, player: int,
                           topology: BoardTopology = STANDARD_TOPOLOGY) -> Optional[int]:
    """Empty cell whose placement creates two or more setups at once (a fork)."""
    for cell in np.flatnonzero(board == EMPTY).tolist():
        if _setups_through(board, cell, player, topology) >= 2:
            return cell
    return None


def find_setup_cell(board: np.ndarray, player: int,
                    topology: BoardTopology = STANDARD_TOPOLOGY) -> Optional[int]:
    """First empty cell of a line with one own piece and two empty cells."""
    for line in topology.lines:
        owners = [board[c] for c in line]
        if owners.count(player) == 1 and owners.count(EMPTY) == 2:
            return line[owners.index(EMPTY)]
    return None


def find_strategic_cell(board: np.ndarray, topology: BoardTopology = STANDARD_TOPOLOGY,
                        rng: Optional[random.Random] = None) -> Optional[int]:
    """Random empty strategic cell, or None when all are taken."""
    free = [c for c in topology.strategic if board[c] == EMPTY]
    if not free:
        return None
    return (rng or random).choice(free)


# ============================================================================
# CLASSIC HELPERS
# ============================================================================

def mill_threats(board: np.ndarray, player: int, to_place: int, on_board: int,
                 topology: BoardTopology = STANDARD_TOPOLOGY) -> Set[int]:
    """Cells where `player` could close a mill on their next move."""
    return {m.to for m in classic_moves(board, player, to_place, on_board, topology) if m.creates_mill}


def creates_setup(board: np.ndarray, move: ClassicMove, player: int,
                  topology: BoardTopology = STANDARD_TOPOLOGY) -> bool:
    """Does the move leave `player` with two in a line and the third cell empty through `to`?"""
    scratch = board.copy()
    if move.source is not None:
        scratch[move.source] = EMPTY
    scratch[move.to] = player
    opponent = opponent_of(player)
    for line in topology.lines_per_cell[move.to]:
        owners = [scratch[c] for c in line]
        if owners.count(player) == 2 and owners.count(EMPTY) == 1 and opponent not in owners:
            return True
    return False
