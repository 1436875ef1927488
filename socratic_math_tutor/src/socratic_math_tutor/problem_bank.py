"""Sample problems for demos and end-to-end tests."""

from dataclasses import dataclass
from typing import Tuple


@dataclass(frozen=True)
class Problem:
    text: str
    description: str


PROBLEMS: Tuple[Problem, ...] = (
    Problem("2x + 5 = 13", "Linear equation solving"),
    Problem("What is 15% of 80?", "Percentage calculation"),
    Problem("Find the area of a circle with radius 5", "Circle area geometry"),
    Problem(
        "If a train travels 60 mph for 2.5 hours, how far does it go?",
        "Distance/rate/time word problem",
    ),
    Problem(
        "A rectangle has perimeter 24 and length twice its width. Find the dimensions.",
        "System of equations with constraints",
    ),
)


def get_problem(index: int) -> Problem:
    """Problem by zero-based index; raises IndexError outside the bank."""
    if not 0 <= index < len(PROBLEMS):
        raise IndexError(f"Problem index must be between 0 and {len(PROBLEMS) - 1}, got {index}")
    return PROBLEMS[index]
