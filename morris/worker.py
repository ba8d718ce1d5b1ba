"""
Nine Men's Morris - Search Worker Process
Evaluates a slice of root moves for the parallel coordinator.
"""

import os
os.environ['OMP_NUM_THREADS'] = '1'
os.environ['OPENBLAS_NUM_THREADS'] = '1'
os.environ['MKL_NUM_THREADS'] = '1'

import logging
from dataclasses import asdict
from multiprocessing import Event, Queue
from typing import Dict, Tuple

import numpy as np

from morris.board import AI, BoardTopology
from morris.config import EngineConfig
from morris.minimax import INF, BaseSearch, ClassicSearch, SimpleSearch


logger = logging.getLogger(__name__)


def topology_message(topology: BoardTopology) -> Dict:
    """Plain-data form of a topology for the request queue."""
    return {'lines': topology.lines, 'adjacency': topology.adjacency}


def engine_message(config: EngineConfig) -> Dict:
    return asdict(config)


class EngineCache:
    """Process-local engines, one per (model, player, topology, settings)."""

    def __init__(self):
        self.engines: Dict[Tuple, BaseSearch] = {}
        self.topologies: Dict[Tuple, BoardTopology] = {}

    def get(self, msg: Dict) -> BaseSearch:
        topo = msg.get('topology') or {}
        lines = tuple(tuple(line) for line in topo['lines']) if topo.get('lines') else None
        adjacency = tuple(tuple(n) for n in topo['adjacency']) if topo.get('adjacency') else None
        settings = msg.get('engine') or {}
        model = msg.get('model', 'simple')
        player = int(msg.get('player', AI))

        key = (model, player, lines, adjacency, tuple(sorted(settings.items())))
        engine = self.engines.get(key)
        if engine is None:
            topology = BoardTopology.from_inputs(lines, adjacency)
            config = EngineConfig(**settings)
            engine_cls = ClassicSearch if model == 'classic' else SimpleSearch
            engine = engine_cls(player=player, topology=topology, config=config)
            self.engines[key] = engine
        return engine


def run_search_request(worker_id: int, msg: Dict, response_queue: Queue, cache: EngineCache):
    """
    Evaluate every (root index, move) pair of the request with a fresh
    transposition table, posting a progress message after each move and a
    final result. A move cut short by the time limit is not counted.
    """
    engine = cache.get(msg)
    engine.begin(msg.get('time_limit'))

    board = np.array(msg['board'], dtype=np.int8)
    if isinstance(engine, ClassicSearch):
        engine.set_counts(msg['to_place'], msg['on_board'])

    depth = int(msg['depth'])
    alpha = msg.get('alpha', -INF)
    beta = msg.get('beta', INF)
    maximizing = msg.get('maximizing', True)

    best_move = None
    best_index = None
    best_score = -INF if maximizing else INF
    evaluated = 0

    for index, move in msg['moves']:
        score = engine.search_child(board, move, depth, alpha, beta, maximizing)
        if engine.search_stopped:
            break
        evaluated += 1
        if (score > best_score) if maximizing else (score < best_score):
            best_move, best_index, best_score = move, index, score

        response_queue.put({
            'type': 'progress',
            'request_id': msg['request_id'],
            'worker_id': worker_id,
            'move': best_move,
            'index': best_index,
            'score': best_score,
            'evaluated': evaluated,
            'error': None,
        })

    response_queue.put({
        'type': 'result',
        'request_id': msg['request_id'],
        'worker_id': worker_id,
        'move': best_move,
        'index': best_index,
        'score': best_score,
        'evaluated': evaluated,
        'error': None,
    })


def worker_process(
    worker_id: int,
    request_queue: Queue,
    response_queue: Queue,
    ready_event: Event,
):
    """
    Worker loop: answers pings, runs search requests, exits on stop.
    Engines (and their tables) never leave the process.
    """
    cache = EngineCache()
    ready_event.set()

    while True:
        msg = request_queue.get()
        kind = msg.get('type')

        if kind == 'stop':
            break

        if kind == 'ping':
            response_queue.put({
                'type': 'pong',
                'request_id': msg.get('request_id'),
                'worker_id': worker_id,
            })

        elif kind == 'search':
            try:
                run_search_request(worker_id, msg, response_queue, cache)
            except Exception as e:
                logger.exception("Worker %d failed on request %s", worker_id, msg.get('request_id'))
                response_queue.put({
                    'type': 'result',
                    'request_id': msg.get('request_id'),
                    'worker_id': worker_id,
                    'move': None,
                    'index': None,
                    'score': -INF,
                    'evaluated': 0,
                    'error': f"{type(e).__name__}: {e}",
                })

        else:
            logger.warning("Worker %d ignoring message of type %r", worker_id, kind)

    logger.debug("Worker %d finished", worker_id)
