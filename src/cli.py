"""Command-line entry point.

    tictactoe-dp play      [--seed N]
    tictactoe-dp train_dp  [--epochs N] [--discount G] [--tolerance T] [--workers W]
    tictactoe-dp report    [--epochs N] [--board "xo./.x./..."]
"""

from __future__ import annotations

import argparse
import logging
import sys

import numpy as np

from src.analysis.playout import play_game, random_chooser
from src.analysis.strategy_report import print_move_values, print_training_summary
from src.engine.board import TicTacToeState
from src.engine.tictactoe import TicTacToeEnvironment
from src.solvers.dp_trainer import DPTrainer, DPTrainerConfig

log = logging.getLogger(__name__)


def _cmd_play(args: argparse.Namespace) -> int:
    env = TicTacToeEnvironment()
    record = play_game(env, random_chooser(np.random.default_rng(args.seed)))
    for step in record.steps:
        print(step.state)
        print(f"got reward {step.reward:+.1f} for {step.action}")
        print("-" * 56)
    print(f"\n\nfinal state:\n\n{record.final_state}")
    return 0


def _train(args: argparse.Namespace) -> tuple[TicTacToeEnvironment, DPTrainer]:
    env = TicTacToeEnvironment(n_workers=args.workers)
    config = DPTrainerConfig(
        num_epochs=args.epochs,
        discount=args.discount,
        tolerance=args.tolerance,
    )
    trainer = DPTrainer.init_with_uniform_policies(env, config)
    return env, trainer


def _cmd_train_dp(args: argparse.Namespace) -> int:
    env, trainer = _train(args)
    result = trainer.train()
    print_training_summary(env.state_transitions(), result)
    return 0


def _cmd_report(args: argparse.Namespace) -> int:
    env, trainer = _train(args)
    result = trainer.train()
    state = TicTacToeState.from_string(args.board)
    print_move_values(env.state_transitions(), result.values, state, trainer.config.discount)
    return 0


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="tictactoe-dp",
        description="Tic-tac-toe as a multi-agent MDP, solved by dynamic programming",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default="INFO",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
    )
    sub = parser.add_subparsers(dest="command", required=True)

    play = sub.add_parser("play", help="Play one uniformly random game and print it")
    play.add_argument("--seed", type=int, default=None)
    play.set_defaults(func=_cmd_play)

    for name, func, help_text in (
        ("train_dp", _cmd_train_dp, "Evaluate uniform policies by DP and print a summary"),
        ("report", _cmd_report, "Train, then print ranked move values for one position"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--epochs", type=int, default=10_000)
        cmd.add_argument("--discount", type=float, default=1.0)
        cmd.add_argument(
            "--tolerance",
            type=float,
            default=None,
            help="Stop once a sweep changes no value by more than this.",
        )
        cmd.add_argument("--workers", type=int, default=1)
        cmd.set_defaults(func=func)
        if name == "report":
            cmd.add_argument(
                "--board",
                type=str,
                default=".../.../...",
                help="Position to report, rows separated by '/', '.' for empty.",
            )
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    log.debug("Arguments: %s", args)
    return args.func(args)


if __name__ == "__main__":
    sys.exit(main())
