"""
Nine Men's Morris - Game State
Authoritative game records for both models, used by the command line,
self-play and tests.
"""

from typing import Dict, List, Optional

import numpy as np

from morris.board import (
    AI, EMPTY, HUMAN, PIECES_PER_PLAYER, STANDARD_TOPOLOGY, BoardTopology, ClassicMove,
    Phase, PieceCounts, check_winner, count_pieces, game_phase, new_board, opponent_of,
    removable_pieces,
)
from morris.movegen import classic_moves, has_classic_move


class IllegalMoveError(ValueError):
    """Raised when a move is not legal in the current position."""


class SimpleGame:
    """Placement-only game: first completed line wins, exhaustion draws."""

    def __init__(self, topology: BoardTopology = STANDARD_TOPOLOGY,
                 pieces_per_player: int = PIECES_PER_PLAYER,
                 first_player: int = HUMAN):
        self.topology = topology
        self.pieces_per_player = pieces_per_player
        self.board = new_board()
        self.current = first_player
        self.winner: Optional[int] = None
        self.history: List[int] = []

    def placed(self, player: int) -> int:
        return count_pieces(self.board, player)

    @property
    def is_draw(self) -> bool:
        if self.winner is not None:
            return False
        if not (self.board == EMPTY).any():
            return True
        return self.placed(self.current) >= self.pieces_per_player

    def is_over(self) -> bool:
        return self.winner is not None or self.is_draw

    def legal_moves(self) -> List[int]:
        if self.is_over():
            return []
        return np.flatnonzero(self.board == EMPTY).tolist()

    def play(self, cell: int):
        if cell not in self.legal_moves():
            raise IllegalMoveError(f"Cell {cell} is not a legal placement")
        self.board[cell] = self.current
        self.history.append(cell)
        self.winner = check_winner(self.board, self.topology)
        self.current = opponent_of(self.current)

    def board_list(self) -> List[int]:
        return self.board.tolist()


class ClassicGame:
    """
    Full rules: placing, moving, flying and removals. A player who has
    placed everything and keeps fewer than 3 pieces, or who cannot move,
    loses. The game is drawn after `move_limit` plies.
    """

    def __init__(self, topology: BoardTopology = STANDARD_TOPOLOGY,
                 first_player: int = HUMAN, move_limit: int = 200):
        self.topology = topology
        self.move_limit = move_limit
        self.board = new_board()
        self.counts: Dict[int, PieceCounts] = {HUMAN: PieceCounts(), AI: PieceCounts()}
        self.current = first_player
        self.winner: Optional[int] = None
        self.plies = 0
        self.history: List[ClassicMove] = []

    @property
    def phase(self) -> Phase:
        return game_phase(self.counts, self.current)

    @property
    def is_draw(self) -> bool:
        return self.winner is None and self.plies >= self.move_limit

    def is_over(self) -> bool:
        return self.winner is not None or self.is_draw

    def _lost(self, player: int) -> bool:
        c = self.counts[player]
        if c.to_place == 0 and c.on_board < 3:
            return True
        return not has_classic_move(self.board, player, c.to_place, c.on_board, self.topology)

    def legal_moves(self) -> List[ClassicMove]:
        """Legal moves for the side to move, one per removal choice after a mill."""
        if self.is_over():
            return []
        player = self.current
        victim = opponent_of(player)
        c = self.counts[player]
        moves: List[ClassicMove] = []
        for move in classic_moves(self.board, player, c.to_place, c.on_board, self.topology):
            if not move.creates_mill:
                moves.append(move)
                continue
            scratch = self.board.copy()
            if move.source is not None:
                scratch[move.source] = EMPTY
            scratch[move.to] = player
            cells = removable_pieces(scratch, victim, self.topology)
            if cells:
                moves.extend(move.with_removal(cell) for cell in cells)
            else:
                moves.append(move)
        return moves

    def play(self, move: ClassicMove):
        if move not in self.legal_moves():
            raise IllegalMoveError(f"{move} is not legal for player {self.current}")

        player = self.current
        victim = opponent_of(player)
        if move.source is None:
            self.counts[player].to_place -= 1
            self.counts[player].on_board += 1
        else:
            self.board[move.source] = EMPTY
        self.board[move.to] = player
        if move.remove is not None:
            self.board[move.remove] = EMPTY
            self.counts[victim].on_board -= 1

        self.history.append(move)
        self.plies += 1
        self.current = victim
        if self._lost(victim):
            self.winner = player

    def counts_dict(self) -> Dict[int, Dict[str, int]]:
        """Counts in the plain form accepted by the agent and the HTTP service."""
        return {p: {'to_place': c.to_place, 'on_board': c.on_board} for p, c in self.counts.items()}

    def board_list(self) -> List[int]:
        return self.board.tolist()
