"""
Nine Men's Morris search engine: alpha-beta minimax with transposition
table, quiescence, iterative deepening and parallel root search, for the
placement-only and the classic game.
"""

from morris.agent import MorrisAgent
from morris.board import AI, EMPTY, HUMAN, InvalidPositionError, Placement, Relocation
from morris.config import Difficulty

__version__ = "0.1.0"
