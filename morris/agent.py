"""
Nine Men's Morris - Agent
Difficulty-tiered move selection for both game models.

Public entry points never raise: malformed input or a finished game gives
None, and any internal failure degrades to a random legal move.
"""

import logging
import random
import time
from typing import Callable, Dict, List, Optional, Union

import numpy as np

from morris.board import (
    AI, BoardTopology, ClassicMove, InvalidPositionError, opponent_of,
    parse_counts, to_board,
)
from morris.config import (
    Difficulty, EngineConfig, get_difficulty_config, parse_difficulty,
)
from morris.heuristics import (
    creates_setup, find_double_setup_cell, find_setup_cell, find_strategic_cell,
    find_winning_cell, mill_threats,
)
from morris.minimax import ClassicSearch, SearchResult, SimpleSearch, hands_from_counts
from morris.movegen import simple_moves
from morris.parallel import ParallelSearch, WorkerPool


logger = logging.getLogger(__name__)


class MorrisAgent:
    """
    Plays one side (`player`) at a fixed difficulty.

    Every tier takes an immediate win. Otherwise TRIVIAL plays uniformly at
    random, BASIC runs the one-ply cascade
    (block, setup, strategic cell, random), and DEEP and MAXIMAL play a
    forced block without searching, otherwise run iterative deepening,
    sequential or across worker processes. MAXIMAL drops to the DEEP budget
    when the parallel search fails.
    """

    def __init__(self, difficulty: Union[str, int, Difficulty] = Difficulty.BASIC,
                 player: int = AI,
                 engine_config: Optional[EngineConfig] = None,
                 seed: Optional[int] = None,
                 clock: Callable[[], float] = time.monotonic,
                 pool: Optional[WorkerPool] = None):
        self.difficulty = parse_difficulty(difficulty)
        self.settings = get_difficulty_config(self.difficulty)
        self.player = player
        self.opponent = opponent_of(player)
        self.config = engine_config or EngineConfig()
        self.rng = random.Random(seed)
        self.clock = clock

        self._pool = pool
        self._owns_pool = pool is None
        self._pool_failed = False
        self._engines: Dict = {}
        self.last_stats: Dict = {}

    # ------------------------------------------------------------------
    # Resources
    # ------------------------------------------------------------------

    def _engine(self, model: str, topology: BoardTopology):
        key = (model, topology)
        engine = self._engines.get(key)
        if engine is None:
            engine_cls = ClassicSearch if model == 'classic' else SimpleSearch
            engine = engine_cls(player=self.player, topology=topology,
                                config=self.config, clock=self.clock)
            self._engines[key] = engine
        return engine

    def _get_pool(self) -> Optional[WorkerPool]:
        """Start the worker pool on first use; None when processes are unavailable."""
        if self._pool is None and not self._pool_failed:
            pool = WorkerPool(config=self.config)
            try:
                pool.start()
            except (OSError, RuntimeError) as e:
                logger.warning("Could not start search workers (%s), searching sequentially", e)
                pool.stop()
                self._pool_failed = True
                return None
            self._pool = pool
        return self._pool

    def close(self):
        """Stop worker processes started by this agent."""
        if self._pool is not None and self._owns_pool:
            self._pool.stop()
            self._pool = None

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()

    def _sequential(self, engine, board: np.ndarray, s) -> SearchResult:
        if isinstance(engine, ClassicSearch):
            result = engine.iterative_deepening(
                board, engine.to_place, engine.on_board,
                s.start_depth, s.max_depth, s.depth_step, s.max_time)
        else:
            result = engine.iterative_deepening(
                board, s.start_depth, s.max_depth, s.depth_step, s.max_time)
        self.last_stats = engine.get_stats()
        return result

    def _parallel(self, engine, board: np.ndarray) -> SearchResult:
        s = self.settings
        counts = None
        if isinstance(engine, ClassicSearch):
            counts = (list(engine.to_place), list(engine.on_board))
        try:
            parallel = ParallelSearch(self._get_pool(), engine, clock=self.clock)
            result = parallel.iterative_deepening(
                board, s.start_depth, s.max_depth, s.depth_step,
                time_limit=s.max_time, worker_timeout=s.worker_timeout)
        except Exception:
            logger.exception("Parallel search failed, searching sequentially at DEEP budget")
            if counts is not None:
                # An interrupted search can leave the scratch counts half applied
                engine.set_counts(*counts)
            result = self._sequential(engine, board, get_difficulty_config(Difficulty.DEEP))
            self.last_stats['fell_back'] = True
            return result
        self.last_stats = parallel.get_stats()
        return result

    def _search(self, engine, board: np.ndarray) -> SearchResult:
        if self.settings.use_parallel:
            result = self._parallel(engine, board)
        else:
            result = self._sequential(engine, board, self.settings)
        logger.debug("%s search: move=%s score=%.1f depth=%d",
                     self.difficulty.name, result.move, result.score, result.depth)
        return result

    # ------------------------------------------------------------------
    # Simple model
    # ------------------------------------------------------------------

    def choose_simple_move(self, board, lines=None) -> Optional[int]:
        """Cell to place on, or None for invalid input or a finished game."""
        self.last_stats = {}
        try:
            topology = BoardTopology.from_inputs(lines)
            cells = to_board(board)
        except InvalidPositionError as e:
            logger.warning("Rejected simple position: %s", e)
            return None

        engine = self._engine('simple', topology)
        if engine.is_terminal(cells):
            return None

        try:
            return self._simple_move(cells, engine)
        except Exception:
            logger.exception("Simple move selection failed, playing a random move")
            return self.rng.choice(simple_moves(cells))

    def _simple_move(self, board: np.ndarray, engine: SimpleSearch) -> int:
        topology = engine.topology
        moves = simple_moves(board)
        win = find_winning_cell(board, self.player, topology)
        if win is not None:
            return win
        if self.difficulty == Difficulty.TRIVIAL:
            return self.rng.choice(moves)

        block = find_winning_cell(board, self.opponent, topology)
        if block is not None:
            return block

        if self.difficulty == Difficulty.BASIC:
            for cell in (find_double_setup_cell(board, self.player, topology),
                         find_setup_cell(board, self.player, topology),
                         find_strategic_cell(board, topology, self.rng)):
                if cell is not None:
                    return cell
            return self.rng.choice(moves)

        result = self._search(engine, board)
        if result.move is None:
            logger.warning("Search found no move, playing a random move")
            return self.rng.choice(moves)
        return int(result.move)

    # ------------------------------------------------------------------
    # Classic model
    # ------------------------------------------------------------------

    def choose_classic_move(self, board, counts, lines=None, adjacency=None) -> Optional[ClassicMove]:
        """Placement or Relocation (with removal when it closes a mill), or None."""
        self.last_stats = {}
        try:
            topology = BoardTopology.from_inputs(lines, adjacency)
            cells = to_board(board)
            parsed = parse_counts(counts, cells)
        except InvalidPositionError as e:
            logger.warning("Rejected classic position: %s", e)
            return None

        engine = self._engine('classic', topology)
        engine.set_counts(*hands_from_counts(parsed))
        if engine.loser(cells, self.player) is not None:
            return None

        try:
            return self._classic_move(cells, engine)
        except Exception:
            logger.exception("Classic move selection failed, playing a random move")
            engine.set_counts(*hands_from_counts(parsed))
            return self.rng.choice(engine.legal_moves(cells, self.player))

    def _immediate_win(self, board: np.ndarray, engine: ClassicSearch,
                       children: List[ClassicMove]) -> Optional[ClassicMove]:
        """A mill whose removal leaves the opponent lost (too few pieces or no move)."""
        for move in children:
            if move.remove is None:
                continue
            engine.apply(board, move, self.player)
            lost = engine.loser(board, self.opponent)
            engine.undo(board, move, self.player)
            if lost == self.opponent:
                return move
        return None

    def _forced_block(self, board: np.ndarray, engine: ClassicSearch,
                      children: List[ClassicMove]) -> Optional[ClassicMove]:
        """
        Occupy a cell where the opponent would close a mill next turn, unless
        we have a mill of our own to close. A relocation can open another
        line, so a block that leaves no threat behind is preferred.
        """
        if any(m.creates_mill for m in children):
            return None
        threats = self._threats(board, engine)
        blocks = [m for m in children if m.to in threats]
        for move in blocks:
            engine.apply(board, move, self.player)
            remaining = self._threats(board, engine)
            engine.undo(board, move, self.player)
            if not remaining:
                return move
        return blocks[0] if blocks else None

    def _threats(self, board: np.ndarray, engine: ClassicSearch):
        return mill_threats(board, self.opponent, engine.to_place[self.opponent],
                            engine.on_board[self.opponent], engine.topology)

    def _classic_move(self, board: np.ndarray, engine: ClassicSearch) -> ClassicMove:
        children = engine.root_children(board)
        win = self._immediate_win(board, engine, children)
        if win is not None:
            return win
        if self.difficulty == Difficulty.TRIVIAL:
            return self.rng.choice(engine.legal_moves(board, self.player))

        block = self._forced_block(board, engine, children)
        if block is not None:
            return block

        if self.difficulty == Difficulty.BASIC:
            return self._basic_classic(board, engine, children)

        result = self._search(engine, board)
        if result.move is None:
            logger.warning("Search found no move, playing a random move")
            return self.rng.choice(children)
        return result.move

    def _basic_classic(self, board: np.ndarray, engine: ClassicSearch,
                       children: List[ClassicMove]) -> ClassicMove:
        topology = engine.topology
        for move in children:
            if move.creates_mill:
                return move

        for move in children:
            if creates_setup(board, move, self.player, topology):
                return move

        strategic = [m for m in children if m.to in topology.strategic]
        if strategic:
            return self.rng.choice(strategic)
        return self.rng.choice(children)

    # ------------------------------------------------------------------
    # Request dispatch
    # ------------------------------------------------------------------

    def choose_move(self, request: Dict) -> Optional[Dict]:
        """
        Dispatch a request dict {model, board, lines?, counts?, adjacency?}.
        Returns {'from', 'to', 'remove'} or None.
        """
        try:
            model = request.get('model', 'simple')
            board = request['board']
        except (AttributeError, KeyError, TypeError):
            logger.warning("Malformed move request: %r", request)
            return None

        if model == 'simple':
            cell = self.choose_simple_move(board, request.get('lines'))
            if cell is None:
                return None
            return {'from': None, 'to': cell, 'remove': None}

        if model == 'classic':
            move = self.choose_classic_move(board, request.get('counts'),
                                            request.get('lines'), request.get('adjacency'))
            return None if move is None else move.to_dict()

        logger.warning("Unknown game model %r", model)
        return None
