"""
Nine Men's Morris - Alpha-Beta Search
Minimax with alpha-beta pruning, transposition table, quiescence and
iterative deepening for the simple (placement only) and classic models.

Scores are always from the engine player's (maximizer's) point of view.
The board passed to `search` is mutated in place and restored before
returning; `iterative_deepening` works on a private copy.
"""

import logging
import time
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional, Sequence, Tuple

import numpy as np

from morris.board import (
    AI, EMPTY, HUMAN, PIECES_PER_PLAYER, STANDARD_TOPOLOGY, BoardTopology, ClassicMove,
    PieceCounts, check_winner, count_pieces, opponent_of, removable_pieces,
)
from morris.config import EngineConfig
from morris.evaluation import (
    DRAW_SCORE, Evaluator, is_forced_win, terminal_score,
)
from morris.movegen import classic_moves, has_classic_move, simple_moves
from morris.ordering import MoveOrderer
from morris.transposition import TranspositionTable, bound_type


logger = logging.getLogger(__name__)

INF = float('inf')


@dataclass
class SearchResult:
    """Best move and score of a (sub)search; `move` is None at leaves."""
    move: object = None
    score: float = 0.0
    depth: int = 0


def hands_from_counts(counts: Dict[int, PieceCounts]) -> Tuple[List[int], List[int]]:
    """Per-player counters as lists indexed by player number (index 0 unused)."""
    to_place = [0, counts[HUMAN].to_place, counts[AI].to_place]
    on_board = [0, counts[HUMAN].on_board, counts[AI].on_board]
    return to_place, on_board


# ============================================================================
# SHARED SEARCH MACHINERY
# ============================================================================

class BaseSearch:
    """Statistics, deadline handling and the iterative deepening loop."""

    def __init__(self, player: int = AI,
                 topology: BoardTopology = STANDARD_TOPOLOGY,
                 config: Optional[EngineConfig] = None,
                 clock: Callable[[], float] = time.monotonic):
        self.player = player
        self.opponent = opponent_of(player)
        self.topology = topology
        self.config = config or EngineConfig()
        self.clock = clock

        self.evaluator = Evaluator(player, topology, pieces_per_player=self.config.pieces_per_player)
        self.orderer = MoveOrderer(self.evaluator, topology)
        self.tt = TranspositionTable(max_entries=self.config.tt_max_entries)

        # Time management
        self.deadline: Optional[float] = None
        self.search_stopped = False

        self.reset_stats()

    def reset_stats(self):
        self.nodes_evaluated = 0
        self.tt_cutoffs = 0
        self.quiescence_nodes = 0
        self.completed_depth = 0
        self.horizon_reached = False

    def begin(self, time_limit: Optional[float] = None):
        """Start a new decision: empty the table, reset counters, arm the deadline."""
        self.tt.clear()
        self.reset_stats()
        self.search_stopped = False
        self.deadline = None if time_limit is None else self.clock() + time_limit

    def _visit(self) -> bool:
        """Count a node; returns True once the deadline has passed."""
        self.nodes_evaluated += 1
        if self.search_stopped:
            return True
        if self.deadline is not None and self.nodes_evaluated % self.config.node_check_interval == 0:
            if self.clock() >= self.deadline:
                self.search_stopped = True
        return self.search_stopped

    def _quiescence_enabled(self) -> bool:
        return self.config.use_quiescence and self.config.quiescence_depth > 0

    def _deepen(self, run_depth: Callable[[int], SearchResult],
                root_moves: Callable[[], list],
                start_depth: int, max_depth: int, depth_step: int,
                time_limit: Optional[float]) -> SearchResult:
        """
        Run depths start_depth, start_depth + step, ... <= max_depth until the
        deadline. An interrupted depth is discarded; a forced win or a search
        that never reached its horizon ends the loop early.
        """
        self.begin(time_limit)
        best: Optional[SearchResult] = None
        depth = max(1, start_depth)

        while depth <= max_depth:
            if self.deadline is not None and self.clock() >= self.deadline:
                break

            self.horizon_reached = False
            result = run_depth(depth)
            if self.search_stopped:
                logger.debug("Depth %d interrupted after %d nodes", depth, self.nodes_evaluated)
                break

            best = SearchResult(result.move, result.score, depth)
            self.completed_depth = depth
            logger.debug("Depth %d: move=%s score=%.1f nodes=%d",
                         depth, result.move, result.score, self.nodes_evaluated)

            if result.move is None or is_forced_win(result.score):
                break
            if not self.horizon_reached:
                # Whole game tree fits in this depth; deeper rounds change nothing
                break

            depth += max(1, depth_step)
            time.sleep(0)

        if best is None:
            moves = root_moves()
            fallback = moves[0] if moves else None
            logger.warning("No search depth completed in time, using first ordered move %s", fallback)
            best = SearchResult(fallback, 0.0, 0)
        return best

    def get_stats(self) -> Dict:
        """Return search statistics."""
        return {
            'nodes': self.nodes_evaluated,
            'tt_cutoffs': self.tt_cutoffs,
            'quiescence_nodes': self.quiescence_nodes,
            'completed_depth': self.completed_depth,
            'tt_stats': self.tt.stats(),
        }


# ============================================================================
# SIMPLE MODEL (placement only, first mill wins)
# ============================================================================

class SimpleSearch(BaseSearch):
    """Search for the placement-only game: the first completed line wins."""

    def _key(self, board: np.ndarray, maximizing: bool) -> bytes:
        return board.tobytes() + (b'\x01' if maximizing else b'\x00')

    def _exhausted(self, board: np.ndarray, mover: int) -> bool:
        """Draw: no empty cell left, or the side to move has placed all its pieces."""
        if not (board == EMPTY).any():
            return True
        return count_pieces(board, mover) >= self.config.pieces_per_player

    def is_terminal(self, board: np.ndarray) -> bool:
        return (check_winner(board, self.topology) is not None
                or self._exhausted(board, self.player))

    def search(self, board: np.ndarray, depth: int, alpha: float = -INF, beta: float = INF,
               maximizing: bool = True, ply: int = 0) -> SearchResult:
        if self._visit():
            return SearchResult()

        key = self._key(board, maximizing)
        entry = self.tt.lookup(key, depth, alpha, beta)
        if entry is not None:
            self.tt_cutoffs += 1
            self.horizon_reached = True
            return SearchResult(entry.best_move, entry.score, depth)

        mover = self.player if maximizing else self.opponent
        winner = check_winner(board, self.topology)
        if winner is not None:
            return SearchResult(None, terminal_score(winner, self.player, depth), depth)
        if self._exhausted(board, mover):
            return SearchResult(None, float(DRAW_SCORE), depth)

        if depth <= 0:
            self.horizon_reached = True
            if self._quiescence_enabled():
                return SearchResult(None, self.quiescence(board, alpha, beta, maximizing, 0), 0)
            return SearchResult(None, self.evaluator.evaluate_simple(board), 0)

        moves = self.orderer.order_simple(board, simple_moves(board), mover,
                                          shallow=depth >= 2 or ply == 0)
        alpha_orig, beta_orig = alpha, beta
        best_move = None
        best_score = -INF if maximizing else INF

        for move in moves:
            board[move] = mover
            score = self.search(board, depth - 1, alpha, beta, not maximizing, ply + 1).score
            board[move] = EMPTY
            if self.search_stopped:
                return SearchResult()

            if maximizing:
                if score > best_score:
                    best_score, best_move = score, move
                alpha = max(alpha, score)
            else:
                if score < best_score:
                    best_score, best_move = score, move
                beta = min(beta, score)
            if beta <= alpha:
                break

        self.tt.store(key, depth, best_score, bound_type(best_score, alpha_orig, beta_orig), best_move)
        return SearchResult(best_move, best_score, depth)

    def quiescence(self, board: np.ndarray, alpha: float, beta: float,
                   maximizing: bool, qdepth: int) -> float:
        """Extend the horizon with mill / block / setup placements only."""
        self.quiescence_nodes += 1
        if self._visit():
            return 0.0

        mover = self.player if maximizing else self.opponent
        winner = check_winner(board, self.topology)
        if winner is not None:
            return terminal_score(winner, self.player, -qdepth)
        if self._exhausted(board, mover):
            return float(DRAW_SCORE)

        stand_pat = self.evaluator.evaluate_simple(board)
        if qdepth >= self.config.quiescence_depth:
            return stand_pat

        # Stand pat: the side to move may decline every tactical move
        if maximizing:
            if stand_pat >= beta:
                return stand_pat
            alpha = max(alpha, stand_pat)
        else:
            if stand_pat <= alpha:
                return stand_pat
            beta = min(beta, stand_pat)

        best = stand_pat
        for move in self.orderer.tactical_simple(board, simple_moves(board), mover):
            board[move] = mover
            score = self.quiescence(board, alpha, beta, not maximizing, qdepth + 1)
            board[move] = EMPTY
            if self.search_stopped:
                break

            if maximizing:
                best = max(best, score)
                alpha = max(alpha, score)
            else:
                best = min(best, score)
                beta = min(beta, score)
            if beta <= alpha:
                break
        return best

    def root_children(self, board: np.ndarray) -> List[int]:
        """Ordered root moves for the engine player (empty when the game is over)."""
        if self.is_terminal(board):
            return []
        return self.orderer.order_simple(board, simple_moves(board), self.player, shallow=True)

    def search_child(self, board: np.ndarray, move: int, depth: int,
                     alpha: float = -INF, beta: float = INF, maximizing: bool = True) -> float:
        """Score of playing root `move`, searched to `depth` plies in total."""
        board[move] = self.player if maximizing else self.opponent
        try:
            return self.search(board, depth - 1, alpha, beta, not maximizing, 1).score
        finally:
            board[move] = EMPTY

    def iterative_deepening(self, board: np.ndarray, start_depth: int = 1, max_depth: int = 4,
                            depth_step: int = 1,
                            time_limit: Optional[float] = None) -> SearchResult:
        work = board.copy()
        return self._deepen(
            lambda depth: self.search(work, depth, -INF, INF, True, 0),
            lambda: self.root_children(work),
            start_depth, max_depth, depth_step, time_limit,
        )


# ============================================================================
# CLASSIC MODEL (placing, moving, flying, removals)
# ============================================================================

class ClassicSearch(BaseSearch):
    """
    Search for the full rules. Piece counters are held in two lists indexed
    by player number and updated together with the board on apply/undo.
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.to_place = [0, PIECES_PER_PLAYER, PIECES_PER_PLAYER]
        self.on_board = [0, 0, 0]

    def set_counts(self, to_place: Sequence[int], on_board: Sequence[int]):
        self.to_place = [int(v) for v in to_place]
        self.on_board = [int(v) for v in on_board]

    def _key(self, board: np.ndarray, maximizing: bool) -> bytes:
        return board.tobytes() + bytes((self.to_place[HUMAN], self.to_place[AI], int(maximizing)))

    # ------------------------------------------------------------------
    # Rules
    # ------------------------------------------------------------------

    def loser(self, board: np.ndarray, mover: int) -> Optional[int]:
        """Player who has lost in this position, if any (mover is to play)."""
        for p in (mover, opponent_of(mover)):
            if self.to_place[p] == 0 and self.on_board[p] < 3:
                return p
        if not has_classic_move(board, mover, self.to_place[mover], self.on_board[mover], self.topology):
            return mover
        return None

    def apply(self, board: np.ndarray, move: ClassicMove, mover: int):
        if move.source is None:
            self.to_place[mover] -= 1
            self.on_board[mover] += 1
        else:
            board[move.source] = EMPTY
        board[move.to] = mover
        if move.remove is not None:
            board[move.remove] = EMPTY
            self.on_board[opponent_of(mover)] -= 1

    def undo(self, board: np.ndarray, move: ClassicMove, mover: int):
        if move.remove is not None:
            victim = opponent_of(mover)
            board[move.remove] = victim
            self.on_board[victim] += 1
        board[move.to] = EMPTY
        if move.source is None:
            self.to_place[mover] += 1
            self.on_board[mover] -= 1
        else:
            board[move.source] = mover

    def _expand_removals(self, board: np.ndarray, moves: Sequence[ClassicMove],
                         mover: int) -> List[ClassicMove]:
        """Replace each mill-forming move with one child per legal removal."""
        victim = opponent_of(mover)
        children: List[ClassicMove] = []
        for move in moves:
            if not move.creates_mill:
                children.append(move)
                continue
            self.apply(board, move, mover)
            cells = self.orderer.order_removals(
                board, removable_pieces(board, victim, self.topology), victim)
            self.undo(board, move, mover)
            if cells:
                children.extend(move.with_removal(cell) for cell in cells)
            else:
                # Opponent has nothing on the board yet
                children.append(move)
        return children

    def legal_moves(self, board: np.ndarray, mover: int) -> List[ClassicMove]:
        """Every legal move with removals expanded, in generator order."""
        moves = classic_moves(board, mover, self.to_place[mover], self.on_board[mover], self.topology)
        return self._expand_removals(board, moves, mover)

    def children(self, board: np.ndarray, mover: int, shallow: bool = True) -> List[ClassicMove]:
        moves = classic_moves(board, mover, self.to_place[mover], self.on_board[mover], self.topology)
        ordered = self.orderer.order_classic(board, moves, mover, self.to_place, self.on_board, shallow)
        return self._expand_removals(board, ordered, mover)

    # ------------------------------------------------------------------
    # Search
    # ------------------------------------------------------------------

    def search(self, board: np.ndarray, depth: int, alpha: float = -INF, beta: float = INF,
               maximizing: bool = True, ply: int = 0) -> SearchResult:
        if self._visit():
            return SearchResult()

        key = self._key(board, maximizing)
        entry = self.tt.lookup(key, depth, alpha, beta)
        if entry is not None:
            self.tt_cutoffs += 1
            self.horizon_reached = True
            return SearchResult(entry.best_move, entry.score, depth)

        mover = self.player if maximizing else self.opponent
        lost = self.loser(board, mover)
        if lost is not None:
            return SearchResult(None, terminal_score(opponent_of(lost), self.player, depth), depth)

        if depth <= 0:
            self.horizon_reached = True
            if self._quiescence_enabled():
                return SearchResult(None, self.quiescence(board, alpha, beta, maximizing, 0), 0)
            return SearchResult(None, self.evaluator.evaluate_classic(board, self.to_place, self.on_board), 0)

        alpha_orig, beta_orig = alpha, beta
        best_move = None
        best_score = -INF if maximizing else INF

        for move in self.children(board, mover, shallow=depth >= 2 or ply == 0):
            self.apply(board, move, mover)
            score = self.search(board, depth - 1, alpha, beta, not maximizing, ply + 1).score
            self.undo(board, move, mover)
            if self.search_stopped:
                return SearchResult()

            if maximizing:
                if score > best_score:
                    best_score, best_move = score, move
                alpha = max(alpha, score)
            else:
                if score < best_score:
                    best_score, best_move = score, move
                beta = min(beta, score)
            if beta <= alpha:
                break

        self.tt.store(key, depth, best_score, bound_type(best_score, alpha_orig, beta_orig), best_move)
        return SearchResult(best_move, best_score, depth)

    def quiescence(self, board: np.ndarray, alpha: float, beta: float,
                   maximizing: bool, qdepth: int) -> float:
        """Extend the horizon with mills (and their removals), blocks and setups."""
        self.quiescence_nodes += 1
        if self._visit():
            return 0.0

        mover = self.player if maximizing else self.opponent
        lost = self.loser(board, mover)
        if lost is not None:
            return terminal_score(opponent_of(lost), self.player, -qdepth)

        stand_pat = self.evaluator.evaluate_classic(board, self.to_place, self.on_board)
        if qdepth >= self.config.quiescence_depth:
            return stand_pat

        if maximizing:
            if stand_pat >= beta:
                return stand_pat
            alpha = max(alpha, stand_pat)
        else:
            if stand_pat <= alpha:
                return stand_pat
            beta = min(beta, stand_pat)

        moves = classic_moves(board, mover, self.to_place[mover], self.on_board[mover], self.topology)
        tactical = self.orderer.tactical_classic(board, moves, mover, self.to_place, self.on_board)

        best = stand_pat
        for move in self._expand_removals(board, tactical, mover):
            self.apply(board, move, mover)
            score = self.quiescence(board, alpha, beta, not maximizing, qdepth + 1)
            self.undo(board, move, mover)
            if self.search_stopped:
                break

            if maximizing:
                best = max(best, score)
                alpha = max(alpha, score)
            else:
                best = min(best, score)
                beta = min(beta, score)
            if beta <= alpha:
                break
        return best

    def root_children(self, board: np.ndarray) -> List[ClassicMove]:
        if self.loser(board, self.player) is not None:
            return []
        return self.children(board, self.player, shallow=True)

    def search_child(self, board: np.ndarray, move: ClassicMove, depth: int,
                     alpha: float = -INF, beta: float = INF, maximizing: bool = True) -> float:
        mover = self.player if maximizing else self.opponent
        self.apply(board, move, mover)
        try:
            return self.search(board, depth - 1, alpha, beta, not maximizing, 1).score
        finally:
            self.undo(board, move, mover)

    def iterative_deepening(self, board: np.ndarray, to_place: Sequence[int], on_board: Sequence[int],
                            start_depth: int = 1, max_depth: int = 4, depth_step: int = 1,
                            time_limit: Optional[float] = None) -> SearchResult:
        work = board.copy()
        self.set_counts(to_place, on_board)
        return self._deepen(
            lambda depth: self.search(work, depth, -INF, INF, True, 0),
            lambda: self.root_children(work),
            start_depth, max_depth, depth_step, time_limit,
        )

