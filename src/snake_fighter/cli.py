"""Command-line entry point: run the server, simulate, or benchmark."""

from __future__ import annotations

import argparse
import json
import logging
import sys

from snake_fighter.config import GameConfig

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="snake-fighter",
        description="Snake Fighter game server and simulation tools.",
    )
    parser.add_argument(
        "--config", type=str, default=None,
        help="Path to a JSON config file (flags override its values).",
    )
    parser.add_argument(
        "--log-level", type=str, default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    sub = parser.add_subparsers(dest="command", help="Available commands.")

    # --- serve ---
    serve_p = sub.add_parser("serve", help="Run the multiplayer server.")
    serve_p.add_argument("--host", type=str, default="0.0.0.0")
    serve_p.add_argument("--port", type=int, default=3000)
    serve_p.add_argument("--tick-ms", type=int, default=None)
    serve_p.add_argument("--max-players", type=int, default=None)
    serve_p.add_argument(
        "--max-snake-length", type=int, default=None,
        help="Cap snake growth (uncapped by default).",
    )

    # --- simulate ---
    sim_p = sub.add_parser(
        "simulate", help="Play one headless AI-vs-AI game and print the result.",
    )
    sim_p.add_argument("--seed", type=int, default=None)
    sim_p.add_argument("--max-ticks", type=int, default=2000)
    sim_p.add_argument(
        "--json", action="store_true", help="Print the final state as JSON.",
    )

    # --- benchmark ---
    bench_p = sub.add_parser(
        "benchmark", help="Measure simulation throughput.",
    )
    bench_p.add_argument("--num-games", type=int, default=20)
    bench_p.add_argument("--max-ticks", type=int, default=500)
    bench_p.add_argument("--seed", type=int, default=42)

    return parser


def _load_config(args: argparse.Namespace) -> GameConfig:
    config = GameConfig.load(args.config) if args.config else GameConfig()

    overrides: dict = {}
    flag_map = {
        "tick_ms": "tick_interval_ms",
        "max_players": "max_players",
        "max_snake_length": "max_snake_length",
    }
    for cli_name, cfg_name in flag_map.items():
        val = getattr(args, cli_name, None)
        if val is not None:
            overrides[cfg_name] = val
    if overrides:
        config = config.with_overrides(**overrides)
    return config


def _run_serve(args: argparse.Namespace) -> int:
    import uvicorn

    from snake_fighter.server.app import create_app

    config = _load_config(args)
    logger.info(
        "Serving on %s:%d (tick %dms, max snake length %s).",
        args.host,
        args.port,
        config.tick_interval_ms,
        config.max_snake_length or "uncapped",
    )
    uvicorn.run(
        create_app(config),
        host=args.host,
        port=args.port,
        log_level=args.log_level.lower(),
    )
    return 0


def _run_simulate(args: argparse.Namespace) -> int:
    from snake_fighter.benchmark import TickClock
    from snake_fighter.local import LocalGame, LocalState

    config = _load_config(args)
    clock = TickClock(config.tick_interval_ms)
    game = LocalGame(
        config, ai_opponent=True, ai_player1=True, seed=args.seed, clock=clock,
    )
    game.begin()
    for _ in range(args.max_ticks):
        game.update()
        clock.advance()
        if game.state == LocalState.GAME_OVER:
            break

    if args.json:
        print(json.dumps(game.get_state(), separators=(",", ":")))  # noqa: T201
        return 0

    winner = game.winner.name if game.winner else "draw"
    if game.state != LocalState.GAME_OVER:
        winner = "unfinished"
    scores = ", ".join(f"{s['name']}={s['score']}" for s in game.sim.scores())
    print(f"Ticks: {game.sim.tick} | Winner: {winner} | Scores: {scores}")  # noqa: T201
    return 0


def _run_benchmark(args: argparse.Namespace) -> int:
    from snake_fighter.benchmark import benchmark_throughput

    result = benchmark_throughput(
        num_games=args.num_games,
        max_ticks=args.max_ticks,
        config=_load_config(args),
        seed=args.seed,
    )
    print(result.summary())  # noqa: T201
    return 0


def main(argv: list[str] | None = None) -> int:
    """Entry point for the ``snake-fighter`` CLI."""
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(name)s %(levelname)s %(message)s",
    )

    if args.command is None:
        parser.print_help()
        return 1

    handlers = {
        "serve": _run_serve,
        "simulate": _run_simulate,
        "benchmark": _run_benchmark,
    }
    return handlers[args.command](args)


if __name__ == "__main__":
    sys.exit(main())
