import numpy as np
import pytest

from morris.board import EMPTY, new_board
from morris.config import EngineConfig


@pytest.fixture
def plain_config() -> EngineConfig:
    """No quiescence, so leaf values are plain static evaluations."""
    return EngineConfig(use_quiescence=False, node_check_interval=64)


@pytest.fixture
def engine_config() -> EngineConfig:
    return EngineConfig(node_check_interval=64, max_workers=2)


@pytest.fixture
def empty_board() -> np.ndarray:
    board = new_board()
    assert (board == EMPTY).all()
    return board
