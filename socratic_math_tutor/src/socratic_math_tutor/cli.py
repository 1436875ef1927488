"""
Interactive Tutoring CLI

Runs one Socratic session in the terminal against the OpenAI backend.
Type 'quit' to end the session and print its analytics.
"""

import argparse
import asyncio
import random
import sys
import uuid
from typing import Callable, List, Optional

from socratic_math_tutor.completion_client import OpenAICompletionBackend
from socratic_math_tutor.config import EngineConfig
from socratic_math_tutor.logger import setup_logging
from socratic_math_tutor.problem_bank import PROBLEMS, get_problem
from socratic_math_tutor.socratic_engine import SocraticEngine

QUIT_WORDS = ("quit", "exit")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Work through a math problem with a Socratic tutor")
    source = parser.add_mutually_exclusive_group()
    source.add_argument("--problem", help="Problem statement to work on")
    source.add_argument(
        "--problem-id",
        type=int,
        help=f"Index into the built-in problem bank (0-{len(PROBLEMS) - 1})",
    )
    parser.add_argument("--seed", type=int, help="Seed for reproducible question selection")
    parser.add_argument("--list", action="store_true", help="List the built-in problems and exit")
    return parser


def print_analytics(engine: SocraticEngine):
    analytics = engine.generate_analytics()
    print("\n" + "=" * 60)
    print("SESSION ANALYTICS")
    print("=" * 60)
    print(f"Turns:                 {analytics.total_turns}")
    print(f"Max depth:             {analytics.max_depth}/5")
    print(f"Difficulty:            {analytics.difficulty.value}")
    print(f"Engagement:            {analytics.engagement_score:.2f}")
    print(f"Understanding checks:  {analytics.understanding_check_count}")
    print(f"Compliance score:      {analytics.compliance_score:.1f}")
    if analytics.question_type_distribution:
        print("Question types:")
        for name, count in analytics.question_type_distribution.items():
            print(f"  {name:18s} {count}")
    if analytics.concepts_explored:
        print(f"Concepts:              {', '.join(analytics.concepts_explored)}")


async def run_session(
    engine: SocraticEngine,
    problem: str,
    read_line: Callable[[str], str] = input,
) -> SocraticEngine:
    """Drive the dialogue until the student quits or input ends."""
    print(f"\nProblem: {problem}\n")
    print(f"Tutor: {await engine.start_problem(problem)}")

    while True:
        try:
            text = read_line("You: ")
        except EOFError:
            break
        if text.strip().lower() in QUIT_WORDS:
            break
        reply = await engine.respond_to_student(text)
        print(f"Tutor: {reply}")

    engine.complete_session()
    print_analytics(engine)
    return engine


async def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    if args.list:
        for index, item in enumerate(PROBLEMS):
            print(f"{index}: {item.text}  ({item.description})")
        return 0

    config = EngineConfig.from_env()
    setup_logging(level=config.log_level)

    if args.problem:
        problem = args.problem
    else:
        try:
            problem = get_problem(args.problem_id or 0).text
        except IndexError as e:
            print(f"ERROR: {e}", file=sys.stderr)
            return 2

    try:
        backend = OpenAICompletionBackend(config)
    except ValueError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        print("   Please ensure .env file exists with OPENAI_API_KEY set", file=sys.stderr)
        return 1

    rng = random.Random(args.seed) if args.seed is not None else None
    engine = SocraticEngine(f"cli-{uuid.uuid4().hex[:8]}", backend, config=config, rng=rng)
    await run_session(engine, problem)
    return 0


def run():
    """Console-script entry point."""
    try:
        sys.exit(asyncio.run(main()))
    except KeyboardInterrupt:
        print("\nSession interrupted.")
        sys.exit(130)


if __name__ == "__main__":
    run()
