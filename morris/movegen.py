"""
Nine Men's Morris - Move Generation
Legal moves for the simple (placement only) and classic models.
"""

from typing import List

import numpy as np

from morris.board import (
    EMPTY, STANDARD_TOPOLOGY, BoardTopology, ClassicMove, Placement, Relocation,
    empty_cells, forms_mill,
)


def simple_moves(board: np.ndarray) -> List[int]:
    """Every empty cell is a legal placement."""
    return empty_cells(board)


def is_flying(to_place: int, on_board: int) -> bool:
    return to_place == 0 and on_board == 3


def classic_moves(board: np.ndarray, player: int, to_place: int, on_board: int,
                  topology: BoardTopology = STANDARD_TOPOLOGY) -> List[ClassicMove]:
    """
    Legal moves for `player` in the classic model.

    Placements while the player still holds pieces, otherwise relocations to
    adjacent empty cells, or to any empty cell when flying. Removals are not
    expanded here; `creates_mill` marks the moves that earn one.
    """
    empties = empty_cells(board)

    if to_place > 0:
        return [
            Placement(to, creates_mill=forms_mill(board, to, player, topology))
            for to in empties
        ]

    flying = is_flying(to_place, on_board)
    moves: List[ClassicMove] = []
    for source in np.flatnonzero(board == player).tolist():
        if flying:
            targets = empties
        else:
            targets = [n for n in topology.adjacency[source] if board[n] == EMPTY]
        for to in targets:
            moves.append(Relocation(
                source, to,
                creates_mill=forms_mill(board, to, player, topology, source=source),
            ))
    return moves


def has_classic_move(board: np.ndarray, player: int, to_place: int, on_board: int,
                     topology: BoardTopology = STANDARD_TOPOLOGY) -> bool:
    """Cheap check for a blocked player (no need to build the move list)."""
    if to_place > 0 or is_flying(to_place, on_board):
        return bool((board == EMPTY).any())
    own = board == player
    empty = board == EMPTY
    return bool((topology.adjacency_matrix[own][:, empty]).any())
