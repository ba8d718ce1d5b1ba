"""
Nine Men's Morris - HTTP Move Service
JSON endpoints that let a game front-end ask the agent for a move.
"""

import logging
import threading
from typing import Dict, Optional, Tuple

from flask import Flask, jsonify, request

from morris.board import AI, PLAYERS
from morris.config import Difficulty, EngineConfig, parse_difficulty
from morris.agent import MorrisAgent


logger = logging.getLogger(__name__)

MODELS = ('simple', 'classic')


class AgentCache:
    """
    One agent per (model, difficulty, player), reused across requests so
    worker processes are started only once. Each agent is used by one
    request at a time.
    """

    def __init__(self, engine_config: Optional[EngineConfig] = None):
        self.engine_config = engine_config
        self.agents: Dict[Tuple, MorrisAgent] = {}
        self.locks: Dict[Tuple, threading.Lock] = {}
        self._lock = threading.Lock()

    def get(self, model: str, difficulty: Difficulty, player: int) -> Tuple[MorrisAgent, threading.Lock]:
        key = (model, difficulty, player)
        with self._lock:
            if key not in self.agents:
                self.agents[key] = MorrisAgent(difficulty, player=player,
                                               engine_config=self.engine_config)
                self.locks[key] = threading.Lock()
            return self.agents[key], self.locks[key]

    def close(self):
        with self._lock:
            for agent in self.agents.values():
                agent.close()
            self.agents.clear()
            self.locks.clear()


def create_app(engine_config: Optional[EngineConfig] = None) -> Flask:
    app = Flask(__name__)
    agents = AgentCache(engine_config)
    app.extensions['morris_agents'] = agents

    @app.route('/api/health')
    def api_health():
        return jsonify({
            'success': True,
            'models': list(MODELS),
            'difficulties': [d.name.lower() for d in Difficulty],
        })

    @app.route('/api/move', methods=['POST'])
    def api_move():
        data = request.get_json(silent=True)
        if not isinstance(data, dict):
            return jsonify({'success': False, 'error': 'Expected a JSON object'}), 400

        model = data.get('model', 'simple')
        if model not in MODELS:
            return jsonify({'success': False, 'error': f'Unknown model: {model}'}), 400

        try:
            difficulty = parse_difficulty(data.get('difficulty', Difficulty.BASIC))
            player = int(data.get('player', AI))
        except (TypeError, ValueError) as e:
            return jsonify({'success': False, 'error': str(e)}), 400
        if player not in PLAYERS:
            return jsonify({'success': False, 'error': f'Unknown player: {player}'}), 400

        agent, lock = agents.get(model, difficulty, player)
        with lock:
            move = agent.choose_move(data)
            stats = agent.last_stats

        if move is None:
            logger.info("No move for %s request (difficulty %s, player %d)", model, difficulty.name, player)
            return jsonify({'success': False, 'error': 'No move available', 'move': None})

        return jsonify({
            'success': True,
            'move': move,
            'difficulty': difficulty.name.lower(),
            'depth': stats.get('completed_depth'),
        })

    return app
