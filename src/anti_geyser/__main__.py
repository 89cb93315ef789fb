"""
Anti-Geyser staking engine CLI entry point.

Run a staking program behind an HTTP API, or simulate scenarios offline.

Usage::

    python -m anti_geyser serve --program program.yaml --db anti_geyser.db
    python -m anti_geyser serve --program program.yaml --start-now --fund 0xabc=1000
    python -m anti_geyser simulate scenarios/sample.yaml --output results.json
    python -m anti_geyser compare scenarios/sample.yaml scenarios/serial_farmers.yaml

Commands:
    serve      Run the keeper and the HTTP API for one program
    simulate   Run a scenario file and print the reward report
    compare    Run several scenario files and print a comparison
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import signal
import sys
import time
from pathlib import Path

import yaml

from anti_geyser.subspecs.api import ApiServer, ApiServerConfig
from anti_geyser.subspecs.engine import InMemoryTokenBank, StakingEngine, StakingError
from anti_geyser.subspecs.keeper import KeeperService
from anti_geyser.subspecs.program import EpochClock, ProgramConfig
from anti_geyser.subspecs.simulator import (
    Scenario,
    render_comparison,
    render_report,
    run_scenario,
)
from anti_geyser.subspecs.storage import SQLiteDatabase
from anti_geyser.types import Uint64, Uint256, format_wad, to_wad

logger = logging.getLogger(__name__)


class ColoredFormatter(logging.Formatter):
    """Logging formatter with ANSI colors for better readability."""

    # ANSI color codes
    GREY = "\x1b[38;5;244m"
    BLUE = "\x1b[38;5;39m"
    GREEN = "\x1b[38;5;40m"
    YELLOW = "\x1b[38;5;220m"
    RED = "\x1b[38;5;196m"
    BOLD_RED = "\x1b[38;5;196;1m"
    CYAN = "\x1b[38;5;51m"
    RESET = "\x1b[0m"

    LEVEL_COLORS = {
        logging.DEBUG: GREY,
        logging.INFO: GREEN,
        logging.WARNING: YELLOW,
        logging.ERROR: RED,
        logging.CRITICAL: BOLD_RED,
    }

    def format(self, record: logging.LogRecord) -> str:
        """Format log record with colors."""
        color = self.LEVEL_COLORS.get(record.levelno, self.RESET)

        timestamp = self.formatTime(record, self.datefmt)
        colored_time = f"{self.CYAN}{timestamp}{self.RESET}"
        levelname = f"{color}{record.levelname:8}{self.RESET}"
        name = f"{self.BLUE}{record.name}{self.RESET}"

        return f"{colored_time} {levelname} {name}: {record.getMessage()}"


def setup_logging(verbose: bool = False, no_color: bool = False) -> None:
    """Configure logging with optional colors."""
    level = logging.DEBUG if verbose else logging.INFO

    handler = logging.StreamHandler()
    handler.setLevel(level)

    if no_color:
        formatter = logging.Formatter(
            "%(asctime)s %(levelname)-8s %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    else:
        formatter = ColoredFormatter(datefmt="%Y-%m-%d %H:%M:%S")

    handler.setFormatter(formatter)

    root = logging.getLogger()
    root.setLevel(level)
    root.addHandler(handler)


def parse_funding(entries: list[str]) -> dict[str, Uint256]:
    """
    Parse `PARTICIPANT=TOKENS` pairs into stake-token grants.

    Raises:
        ValueError: If an entry is malformed or its amount is not a decimal.
    """
    grants: dict[str, Uint256] = {}
    for entry in entries:
        participant, sep, amount = entry.partition("=")
        if not sep or not participant:
            raise ValueError(f"Expected PARTICIPANT=TOKENS, got {entry!r}")
        grants[participant] = grants.get(participant, Uint256(0)) + to_wad(amount)
    return grants


def open_engine(
    program_path: Path,
    db_path: Path | None,
    start_now: bool,
    funding: dict[str, Uint256],
) -> tuple[StakingEngine, SQLiteDatabase | None]:
    """
    Create the engine for `serve`, resuming from the database when it holds a program.

    Token balances live in memory. The engine account is re-funded with the
    live stakes and the reward budget on every start.
    """
    stake_token = InMemoryTokenBank("LP")
    reward_token = InMemoryTokenBank("REWARD")

    database = SQLiteDatabase(db_path) if db_path is not None else None
    stored = database.get_program() if database is not None else None

    if database is not None and stored is not None:
        logger.info("Resuming program from %s", db_path)
        clock = EpochClock.for_program(stored)
        engine = StakingEngine.load(database, clock, stake_token, reward_token)
    else:
        logger.info("Loading program from %s", program_path)
        config = ProgramConfig.from_yaml_file(program_path)

        # Override the start time for testing if requested.
        if start_now:
            original = int(config.start_time)
            config = config.model_copy(update={"start_time": Uint64(int(time.time()))})
            logger.warning(
                "Overriding start time: %d -> %d (now)", original, int(config.start_time)
            )

        clock = EpochClock.for_program(config)
        engine = StakingEngine(config, clock, stake_token, reward_token, database=database)

    config = engine.config
    stake_token.mint(engine.account, engine.total_staked())
    reward_token.mint(
        engine.account, Uint256(int(config.reward_per_epoch) * int(config.total_epochs))
    )
    for participant, amount in funding.items():
        stake_token.mint(participant, amount)
        logger.info("Funded %s with %s %s", participant, format_wad(amount), stake_token.symbol)

    return engine, database


async def serve(engine: StakingEngine, api_config: ApiServerConfig) -> None:
    """
    Run the keeper and the API server until interrupted.

    The keeper exits on its own once every epoch is finalized; the API keeps
    serving queries and claims until shutdown.
    """
    keeper = KeeperService(engine)
    api_server = ApiServer(config=api_config, engine_getter=lambda: engine)
    shutdown = asyncio.Event()

    try:
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            loop.add_signal_handler(sig, shutdown.set)
    except (ValueError, RuntimeError, NotImplementedError):
        # Cannot add handlers outside the main thread.
        pass

    async def wait_shutdown() -> None:
        await shutdown.wait()
        keeper.stop()
        api_server.stop()

    async with asyncio.TaskGroup() as tg:
        tg.create_task(keeper.run())
        tg.create_task(api_server.run())
        tg.create_task(wait_shutdown())


def run_serve(args: argparse.Namespace) -> int:
    try:
        funding = parse_funding(args.fund)
        engine, database = open_engine(args.program, args.db, args.start_now, funding)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error("Cannot start program: %s", e)
        return 1

    try:
        asyncio.run(serve(engine, ApiServerConfig(host=args.host, port=args.port)))
    except KeyboardInterrupt:
        logger.info("Shutting down...")
    finally:
        if database is not None:
            database.close()
    return 0


def run_simulate(args: argparse.Namespace) -> int:
    try:
        scenario = Scenario.from_file(args.scenario)
        result = run_scenario(scenario)
    except (OSError, ValueError, yaml.YAMLError) as e:
        logger.error("Cannot load scenario %s: %s", args.scenario, e)
        return 1
    except StakingError as e:
        logger.error("Scenario %s rejected: %s", args.scenario, e.message)
        return 1

    print(render_report(result))

    if args.output is not None:
        args.output.write_text(json.dumps(result.to_json(), indent=2) + "\n", encoding="utf-8")
        logger.info("Results saved to %s", args.output)
    return 0


def run_compare(args: argparse.Namespace) -> int:
    results = []
    for path in args.scenarios:
        try:
            results.append(run_scenario(Scenario.from_file(path)))
        except (OSError, ValueError, yaml.YAMLError) as e:
            logger.error("Cannot load scenario %s: %s", path, e)
        except StakingError as e:
            logger.error("Scenario %s rejected: %s", path, e.message)

    if not results:
        return 1

    print(render_comparison(results))
    return 0 if len(results) == len(args.scenarios) else 1


def build_parser() -> argparse.ArgumentParser:
    """The argument parser with every subcommand."""
    parser = argparse.ArgumentParser(
        prog="anti_geyser",
        description="Anti-Geyser epoch staking rewards",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog=__doc__,
    )

    # Logging flags are shared by every subcommand.
    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")
    common.add_argument(
        "--no-color", action="store_true", help="Disable colored logging output"
    )

    commands = parser.add_subparsers(dest="command", required=True)

    serve_parser = commands.add_parser(
        "serve", parents=[common], help="Run the keeper and the HTTP API"
    )
    serve_parser.add_argument(
        "--program", required=True, type=Path, help="Path to the program YAML file"
    )
    serve_parser.add_argument(
        "--db", type=Path, default=None, help="SQLite database file (default: in memory only)"
    )
    serve_parser.add_argument(
        "--host", default="0.0.0.0", help="Address to bind to (default: 0.0.0.0)"
    )
    serve_parser.add_argument(
        "--port", type=int, default=8545, help="Port to listen on (default: 8545)"
    )
    serve_parser.add_argument(
        "--start-now",
        action="store_true",
        help="Override the program start time to the current time (for testing)",
    )
    serve_parser.add_argument(
        "--fund",
        action="append",
        default=[],
        metavar="PARTICIPANT=TOKENS",
        help="Mint stake tokens to a participant (can be repeated)",
    )
    serve_parser.set_defaults(handler=run_serve)

    simulate_parser = commands.add_parser(
        "simulate", parents=[common], help="Run a scenario file and print the report"
    )
    simulate_parser.add_argument("scenario", type=Path, help="Scenario file (JSON or YAML)")
    simulate_parser.add_argument(
        "--output", type=Path, default=None, help="Write per-epoch results as JSON"
    )
    simulate_parser.set_defaults(handler=run_simulate)

    compare_parser = commands.add_parser(
        "compare", parents=[common], help="Run several scenario files and compare them"
    )
    compare_parser.add_argument(
        "scenarios", nargs="+", type=Path, help="Scenario files (JSON or YAML)"
    )
    compare_parser.set_defaults(handler=run_compare)

    return parser


def main(argv: list[str] | None = None) -> int:
    """CLI entry point."""
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose, args.no_color)
    return args.handler(args)


if __name__ == "__main__":
    sys.exit(main())
