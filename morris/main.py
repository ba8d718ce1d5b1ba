#!/usr/bin/env python3
"""
Nine Men's Morris - Main Entry Point
Console play, agent self-play and the HTTP move service
"""

import argparse
import logging
import multiprocessing as mp
import sys
import time

from morris.board import AI, ADJACENCY, EMPTY, HUMAN, move_from_dict
from morris.config import DIFFICULTY_CONFIGS, EngineConfig, parse_difficulty
from morris.agent import MorrisAgent
from morris.game import ClassicGame, IllegalMoveError, SimpleGame


# Board position coordinates for rendering (row, col format)
POINT_TO_COORD = {
    0: (0, 0), 1: (0, 3), 2: (0, 6),
    3: (1, 1), 4: (1, 3), 5: (1, 5),
    6: (2, 2), 7: (2, 3), 8: (2, 4),
    9: (3, 0), 10: (3, 1), 11: (3, 2),
    12: (3, 4), 13: (3, 5), 14: (3, 6),
    15: (4, 2), 16: (4, 3), 17: (4, 4),
    18: (5, 1), 19: (5, 3), 20: (5, 5),
    21: (6, 0), 22: (6, 3), 23: (6, 6),
}

SYMBOLS = {EMPTY: '.', HUMAN: 'X', AI: 'O'}

BOARD_NUMBERS = """
     0-----------1-----------2
     |           |           |
     |     3-----4-----5     |
     |     |     |     |     |
     |     |  6--7--8  |     |
     |     |  |     |  |     |
     9----10-11    12-13----14
     |     |  |     |  |     |
     |     | 15-16-17  |     |
     |     |     |     |     |
     |    18----19----20     |
     |           |           |
    21----------22----------23
"""


def render_board(board) -> str:
    """Draw the board on a 13x25 character grid."""
    grid = [[' '] * 25 for _ in range(13)]
    for cell, nbrs in enumerate(ADJACENCY):
        r, c = POINT_TO_COORD[cell]
        for n in nbrs:
            r2, c2 = POINT_TO_COORD[n]
            if r == r2:
                for x in range(min(c, c2) * 4 + 1, max(c, c2) * 4):
                    grid[r * 2][x] = '-'
            else:
                for y in range(min(r, r2) * 2 + 1, max(r, r2) * 2):
                    grid[y][c * 4] = '|'
    for cell, (r, c) in POINT_TO_COORD.items():
        grid[r * 2][c * 4] = SYMBOLS[int(board[cell])]
    return '\n'.join('    ' + ''.join(row).rstrip() for row in grid)


def announce(winner, human: int = HUMAN):
    if winner is None:
        print("🤝 DRAW!")
    elif winner == human:
        print("🎉 YOU WIN!")
    else:
        print("🤖 AI WINS!")


# ============================================================================
# CONSOLE PLAY
# ============================================================================

def play_simple(agent: MorrisAgent, human_first: bool, pieces_per_player: int):
    game = SimpleGame(pieces_per_player=pieces_per_player,
                      first_player=HUMAN if human_first else AI)
    print(BOARD_NUMBERS)

    while not game.is_over():
        print(f"\n{render_board(game.board)}\n")
        if game.current == HUMAN:
            raw = input("Your cell (0-23): ").strip()
            try:
                game.play(int(raw))
            except (ValueError, IllegalMoveError) as e:
                print(f"Invalid move: {e}")
            continue

        start = time.time()
        cell = agent.choose_simple_move(game.board_list())
        if cell is None:
            print("AI has no move")
            break
        print(f"AI plays: {cell} ({time.time() - start:.2f}s)")
        game.play(cell)

    print(f"\n{render_board(game.board)}\n")
    announce(game.winner)


def parse_classic_input(raw: str, placing: bool):
    """'to [remove]' while placing, 'from to [remove]' afterwards."""
    values = [int(tok) for tok in raw.replace(',', ' ').split()]
    if placing and len(values) in (1, 2):
        return move_from_dict({'to': values[0], 'remove': values[1] if len(values) == 2 else None})
    if not placing and len(values) in (2, 3):
        return move_from_dict({'from': values[0], 'to': values[1],
                               'remove': values[2] if len(values) == 3 else None})
    raise ValueError("expected 'to [remove]' while placing, 'from to [remove]' when moving")


def play_classic(agent: MorrisAgent, human_first: bool, move_limit: int):
    game = ClassicGame(first_player=HUMAN if human_first else AI, move_limit=move_limit)
    print(BOARD_NUMBERS)

    while not game.is_over():
        counts = game.counts
        print(f"\n{render_board(game.board)}")
        print(f"You: {counts[HUMAN].to_place} in hand, {counts[HUMAN].on_board} on board | "
              f"AI: {counts[AI].to_place} in hand, {counts[AI].on_board} on board\n")

        if game.current == HUMAN:
            placing = counts[HUMAN].to_place > 0
            prompt = "Place (to [remove]): " if placing else "Move (from to [remove]): "
            try:
                game.play(parse_classic_input(input(prompt), placing))
            except (ValueError, IllegalMoveError) as e:
                print(f"Invalid move: {e}")
            continue

        start = time.time()
        move = agent.choose_classic_move(game.board_list(), game.counts_dict())
        if move is None:
            print("AI has no move")
            break
        print(f"AI plays: {move.to_dict()} ({time.time() - start:.2f}s)")
        game.play(move)

    print(f"\n{render_board(game.board)}\n")
    announce(game.winner)


# ============================================================================
# SELF-PLAY
# ============================================================================

def play_one(model: str, agents, first_player: int, pieces_per_player: int, move_limit: int):
    """Play one agent-vs-agent game; returns the winner or None for a draw."""
    if model == 'classic':
        game = ClassicGame(first_player=first_player, move_limit=move_limit)
    else:
        game = SimpleGame(pieces_per_player=pieces_per_player, first_player=first_player)

    while not game.is_over():
        agent = agents[game.current]
        if model == 'classic':
            move = agent.choose_classic_move(game.board_list(), game.counts_dict())
        else:
            move = agent.choose_simple_move(game.board_list())
        if move is None:
            break
        game.play(move)
    return game.winner


def run_selfplay(model: str, first: str, second: str, games: int,
                 pieces_per_player: int, move_limit: int, seed: int):
    config = EngineConfig(pieces_per_player=pieces_per_player)
    agents = {
        HUMAN: MorrisAgent(first, player=HUMAN, engine_config=config, seed=seed),
        AI: MorrisAgent(second, player=AI, engine_config=config, seed=seed + 1),
    }
    names = {p: f"{a.difficulty.name.lower()} (player {p})" for p, a in agents.items()}
    results = {HUMAN: 0, AI: 0, None: 0}

    print(f"\n{'=' * 50}")
    print(f"{model.capitalize()} self-play: {names[HUMAN]} vs {names[AI]}, {games} games")
    print(f"{'=' * 50}")

    try:
        for i in range(games):
            first_player = HUMAN if i % 2 == 0 else AI
            start = time.time()
            winner = play_one(model, agents, first_player, pieces_per_player, move_limit)
            results[winner] += 1
            outcome = "draw" if winner is None else f"{names[winner]} wins"
            print(f"  Game {i + 1}: {outcome} ({time.time() - start:.1f}s)")
    finally:
        for agent in agents.values():
            agent.close()

    print(f"\n{names[HUMAN]}: {results[HUMAN]}W | {names[AI]}: {results[AI]}W | draws: {results[None]}")
    return results


def show_difficulty_info():
    """Show information about the difficulty tiers."""
    print("\n" + "=" * 70)
    print("DIFFICULTY TIERS")
    print("=" * 70)
    for difficulty, cfg in DIFFICULTY_CONFIGS.items():
        print(f"\n{difficulty.name}: {cfg.description}")
        print("-" * 50)
        if cfg.use_search:
            print(f"  Depths:          {cfg.start_depth} → {cfg.max_depth} (step {cfg.depth_step})")
            print(f"  Time budget:     {cfg.max_time:.1f}s")
            print(f"  Parallel:        {'yes' if cfg.use_parallel else 'no'}")
    print("\n" + "=" * 70)


def main(argv=None):
    parser = argparse.ArgumentParser(
        description="Nine Men's Morris - Search Engine",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  # Play the placement-only game against the hard agent
  python -m morris.main play --difficulty hard

  # Play the full game, moving first
  python -m morris.main play --model classic --human-first

  # Pit two tiers against each other
  python -m morris.main selfplay --difficulty hard --opponent medium --games 10

  # Run the HTTP move service
  python -m morris.main serve --port 7860
        """
    )

    parser.add_argument(
        'mode',
        choices=['play', 'selfplay', 'serve', 'info'],
        help='Mode: play, selfplay, serve, or info'
    )
    parser.add_argument(
        '--model', choices=['simple', 'classic'], default='simple',
        help='Game model (default: simple)'
    )
    parser.add_argument(
        '--difficulty', type=str, default='hard',
        help='Agent difficulty: easy/medium/hard/expert or tier name (default: hard)'
    )
    parser.add_argument(
        '--opponent', type=str, default='medium',
        help='Second agent difficulty for selfplay (default: medium)'
    )
    parser.add_argument(
        '--games', type=int, default=10,
        help='Number of selfplay games (default: 10)'
    )
    parser.add_argument(
        '--human-first', action='store_true',
        help='Human moves first in play mode'
    )
    parser.add_argument(
        '--pieces', type=int, default=9,
        help='Pieces per player in the simple model (default: 9)'
    )
    parser.add_argument(
        '--move-limit', type=int, default=200,
        help='Plies before a classic game is drawn (default: 200)'
    )
    parser.add_argument(
        '--seed', type=int, default=0,
        help='Random seed for selfplay agents (default: 0)'
    )
    parser.add_argument(
        '--host', type=str, default='0.0.0.0',
        help='Bind address for serve (default: 0.0.0.0)'
    )
    parser.add_argument(
        '--port', type=int, default=7860,
        help='Port for serve (default: 7860)'
    )
    parser.add_argument(
        '--debug', action='store_true',
        help='Flask debug mode for serve'
    )
    parser.add_argument(
        '--verbose', action='store_true',
        help='Log search details'
    )

    args = parser.parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format='%(asctime)s %(name)s %(levelname)s: %(message)s',
    )

    if args.mode == 'info':
        show_difficulty_info()
        return

    # Set multiprocessing start method
    mp.set_start_method('spawn', force=True)

    try:
        difficulty = parse_difficulty(args.difficulty)
        opponent = parse_difficulty(args.opponent)
    except ValueError as e:
        parser.error(str(e))

    if args.mode == 'play':
        config = EngineConfig(pieces_per_player=args.pieces)
        with MorrisAgent(difficulty, player=AI, engine_config=config) as agent:
            print(f"\nPlaying {args.model} against {difficulty.name.lower()} "
                  f"({DIFFICULTY_CONFIGS[difficulty].description})")
            print(f"You are {SYMBOLS[HUMAN]}, the AI is {SYMBOLS[AI]}")
            if args.model == 'classic':
                play_classic(agent, args.human_first, args.move_limit)
            else:
                play_simple(agent, args.human_first, args.pieces)

    elif args.mode == 'selfplay':
        run_selfplay(args.model, difficulty, opponent, args.games,
                     args.pieces, args.move_limit, args.seed)

    elif args.mode == 'serve':
        from morris.webui import create_app
        app = create_app()
        print(f"Serving moves on http://{args.host}:{args.port}/api/move")
        app.run(host=args.host, port=args.port, debug=args.debug)


if __name__ == "__main__":
    if len(sys.argv) == 1:
        print("=" * 70)
        print("Nine Men's Morris - Search Engine")
        print("=" * 70)
        print()
        print("Usage: python -m morris.main {play,selfplay,serve,info} [options]")
        print("       python -m morris.main --help")
        sys.exit(0)
    main()
