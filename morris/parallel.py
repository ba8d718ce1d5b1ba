"""
Nine Men's Morris - Parallel Root Search
Splits the ordered root moves across worker processes, one iterative
deepening round at a time, and merges the results.
"""

import itertools
import logging
import math
import multiprocessing as mp
import os
import queue
import time
from typing import Callable, Dict, List, Optional, Sequence, Set

import numpy as np

from morris.config import EngineConfig
from morris.evaluation import is_forced_win
from morris.minimax import INF, BaseSearch, ClassicSearch, SearchResult
from morris.worker import engine_message, topology_message, worker_process


logger = logging.getLogger(__name__)

# Seconds between liveness checks while a round waits for answers
LIVENESS_POLL = 0.25


def default_worker_count(config: EngineConfig) -> int:
    return max(0, min(config.max_workers, os.cpu_count() or 1))


# ============================================================================
# WORKER POOL
# ============================================================================

class WorkerPool:
    """
    Long-lived search processes with one request queue each and a shared
    response queue. Workers that miss a ping or a round deadline are marked
    suspect and skipped until the next decision.
    """

    def __init__(self, num_workers: Optional[int] = None, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()
        self.num_workers = default_worker_count(self.config) if num_workers is None else num_workers
        self.ctx = mp.get_context(self.config.mp_start_method)

        self.workers: List = []
        self.request_queues: List = []
        self.ready_events: List = []
        self.response_queue = None

        self.suspect: Set[int] = set()
        self._request_ids = itertools.count(1)

    @property
    def started(self) -> bool:
        return bool(self.workers)

    def start(self):
        """Start worker processes."""
        if self.started or self.num_workers <= 0:
            return
        logger.info("Starting %d search workers", self.num_workers)

        self.response_queue = self.ctx.Queue()
        for i in range(self.num_workers):
            request_q = self.ctx.Queue()
            ready_evt = self.ctx.Event()
            p = self.ctx.Process(
                target=worker_process,
                args=(i, request_q, self.response_queue, ready_evt),
                daemon=True,
            )
            p.start()
            self.workers.append(p)
            self.request_queues.append(request_q)
            self.ready_events.append(ready_evt)

        for i, evt in enumerate(self.ready_events):
            if not evt.wait(timeout=self.config.worker_start_timeout):
                logger.warning("Worker %d did not report ready", i)
                self.suspect.add(i)

    def stop(self):
        """Stop all worker processes."""
        for q in self.request_queues:
            try:
                q.put({'type': 'stop'})
            except (OSError, ValueError):
                logger.debug("Request queue already closed")

        for p in self.workers:
            p.join(timeout=2)
            if p.is_alive():
                p.terminate()

        self.workers = []
        self.request_queues = []
        self.ready_events = []
        self.response_queue = None
        self.suspect.clear()

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, *exc):
        self.stop()

    def next_request_id(self) -> int:
        return next(self._request_ids)

    def send(self, worker_id: int, msg: Dict):
        self.request_queues[worker_id].put(msg)

    def receive(self, timeout: float) -> Optional[Dict]:
        try:
            return self.response_queue.get(timeout=max(0.0, timeout))
        except queue.Empty:
            return None

    def mark_suspect(self, worker_id: int):
        if worker_id not in self.suspect:
            logger.warning("Worker %d marked suspect", worker_id)
        self.suspect.add(worker_id)

    def is_alive(self, worker_id: int) -> bool:
        return worker_id < len(self.workers) and self.workers[worker_id].is_alive()

    def candidates(self) -> List[int]:
        return [i for i in range(len(self.workers)) if i not in self.suspect and self.is_alive(i)]

    def ping(self, timeout: Optional[float] = None) -> List[int]:
        """
        Liveness check for a new decision. Forgets earlier suspicion, then
        marks every worker that does not answer in time. Returns the live ids.
        """
        if not self.started:
            return []
        self.suspect = {i for i, p in enumerate(self.workers) if not p.is_alive()}
        candidates = self.candidates()
        timeout = self.config.ping_timeout if timeout is None else timeout

        request_id = self.next_request_id()
        for worker_id in candidates:
            self.send(worker_id, {'type': 'ping', 'request_id': request_id})

        alive: Set[int] = set()
        deadline = time.monotonic() + timeout
        while len(alive) < len(candidates):
            msg = self.receive(deadline - time.monotonic())
            if msg is None:
                break
            # Anything else is a stale answer from an earlier request
            if msg.get('type') == 'pong' and msg.get('request_id') == request_id:
                alive.add(msg['worker_id'])

        for worker_id in candidates:
            if worker_id not in alive:
                self.mark_suspect(worker_id)
        return sorted(alive)


# ============================================================================
# PARALLEL SEARCH
# ============================================================================

class ParallelSearch:
    """
    Parallel iterative deepening over a WorkerPool.

    `engine` is the sequential engine for the same model and player: it
    orders the root moves and is the fallback when no worker can help.
    """

    def __init__(self, pool: Optional[WorkerPool], engine: BaseSearch,
                 clock: Callable[[], float] = time.monotonic):
        self.pool = pool
        self.engine = engine
        self.clock = clock
        self.model = 'classic' if isinstance(engine, ClassicSearch) else 'simple'

        self.rounds = 0
        self.timeouts = 0
        self.completed_depth = 0
        self.fell_back = False

    def _request(self, board: np.ndarray, moves: List, depth: int, request_id: int,
                 time_limit: float) -> Dict:
        engine = self.engine
        msg = {
            'type': 'search',
            'request_id': request_id,
            'model': self.model,
            'board': board.tolist(),
            'to_place': None,
            'on_board': None,
            'moves': moves,
            'depth': depth,
            'alpha': -INF,
            'beta': INF,
            'maximizing': True,
            'player': engine.player,
            'topology': topology_message(engine.topology),
            'engine': engine_message(engine.config),
            'time_limit': time_limit,
        }
        if isinstance(engine, ClassicSearch):
            msg['to_place'] = list(engine.to_place)
            msg['on_board'] = list(engine.on_board)
        return msg

    def _run_round(self, board: np.ndarray, children: Sequence, depth: int,
                   timeout: float):
        """
        One depth round. Returns (result, complete) where result.move is None
        when nothing usable came back.
        """
        live = self.pool.candidates()
        wanted = math.ceil(len(children) / max(1, self.engine.config.min_moves_per_worker))
        live = live[:max(1, min(len(live), wanted))]
        chunks = [c for c in np.array_split(np.arange(len(children)), len(live)) if len(c)]

        request_id = self.pool.next_request_id()
        pending: Dict[int, int] = {}
        for worker_id, chunk in zip(live, chunks):
            moves = [(int(i), children[int(i)]) for i in chunk]
            self.pool.send(worker_id, self._request(board, moves, depth, request_id, timeout))
            pending[worker_id] = len(moves)

        latest: Dict[int, Dict] = {}
        complete = True
        round_deadline = time.monotonic() + timeout

        while pending:
            msg = self.pool.receive(min(LIVENESS_POLL, round_deadline - time.monotonic()))
            if msg is None:
                if time.monotonic() >= round_deadline:
                    break
                for worker_id in [w for w in pending if not self.pool.is_alive(w)]:
                    logger.warning("Worker %d died at depth %d", worker_id, depth)
                    del pending[worker_id]
                    self.pool.mark_suspect(worker_id)
                    complete = False
                continue
            if msg.get('request_id') != request_id:
                continue

            worker_id = msg['worker_id']
            if msg['index'] is not None:
                latest[worker_id] = msg
            if msg['type'] != 'result':
                continue

            expected = pending.pop(worker_id, 0)
            if msg.get('error'):
                logger.warning("Worker %d failed at depth %d: %s", worker_id, depth, msg['error'])
                self.pool.mark_suspect(worker_id)
                complete = False
            elif msg['evaluated'] < expected:
                complete = False

        if pending:
            self.timeouts += 1
            complete = False
            for worker_id in pending:
                logger.warning("Worker %d timed out at depth %d", worker_id, depth)
                self.pool.mark_suspect(worker_id)

        # Highest score wins, lowest root index breaks ties
        best = None
        for msg in latest.values():
            if msg['score'] == -INF:
                continue
            if best is None or (msg['score'], -msg['index']) > (best['score'], -best['index']):
                best = msg

        if best is None:
            return SearchResult(None, -INF, depth), complete
        return SearchResult(children[best['index']], best['score'], depth), complete

    def _fallback(self, board: np.ndarray, start_depth: int, max_depth: int, depth_step: int,
                  deadline: float) -> SearchResult:
        self.fell_back = True
        remaining = max(0.0, deadline - self.clock())
        if isinstance(self.engine, ClassicSearch):
            return self.engine.iterative_deepening(
                board, self.engine.to_place, self.engine.on_board,
                start_depth, max_depth, depth_step, remaining)
        return self.engine.iterative_deepening(board, start_depth, max_depth, depth_step, remaining)

    def iterative_deepening(self, board: np.ndarray, start_depth: int = 1, max_depth: int = 4,
                            depth_step: int = 1, time_limit: float = 6.0,
                            worker_timeout: Optional[float] = None) -> SearchResult:
        """
        Deepen like the sequential driver, one worker round per depth. For
        the classic model, set the engine's counts first (`set_counts`).
        A round with a timeout is kept only when no earlier round completed.
        """
        self.rounds = 0
        self.timeouts = 0
        self.completed_depth = 0
        self.fell_back = False

        deadline = self.clock() + time_limit
        worker_timeout = time_limit if worker_timeout is None else worker_timeout
        work = board.copy()

        self.engine.begin(None)
        children = self.engine.root_children(work)
        if not children:
            return SearchResult(None, 0.0, 0)

        workers = self.pool.ping() if self.pool is not None else []
        if not workers:
            logger.warning("No search workers available, searching sequentially")
            return self._fallback(work, start_depth, max_depth, depth_step, deadline)

        best: Optional[SearchResult] = None
        depth = max(1, start_depth)
        while depth <= max_depth:
            now = self.clock()
            if now >= deadline or not self.pool.candidates():
                break

            result, complete = self._run_round(work, children, depth,
                                               min(worker_timeout, deadline - now))
            self.rounds += 1
            logger.debug("Parallel depth %d: move=%s score=%.1f complete=%s",
                         depth, result.move, result.score, complete)

            if not complete:
                if best is None and result.move is not None:
                    best = result
                break

            best = result
            self.completed_depth = depth
            if is_forced_win(result.score):
                break
            depth += max(1, depth_step)
            time.sleep(0)

        if best is None:
            logger.warning("Parallel search returned nothing usable, searching sequentially")
            return self._fallback(work, start_depth, max_depth, depth_step, deadline)
        return best

    def get_stats(self) -> Dict:
        return {
            'rounds': self.rounds,
            'timeouts': self.timeouts,
            'completed_depth': self.completed_depth if not self.fell_back else self.engine.completed_depth,
            'fell_back': self.fell_back,
            'suspect_workers': sorted(self.pool.suspect) if self.pool is not None else [],
            'engine': self.engine.get_stats(),
        }
