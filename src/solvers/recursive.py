import logging
from typing import Iterator, Tuple

logger = logging.getLogger(__name__)

Move = Tuple[int, int]


def solve(n: int, from_peg: int = 0, to_peg: int = 2, aux_peg: int = 1) -> Iterator[Move]:
    """Yield the optimal move sequence for n disks.

    Moves n disks from from_peg to to_peg using aux_peg as the intermediate.
    The sequence has exactly 2**n - 1 moves. Each call returns a new generator,
    so the sequence can be enumerated again from the start.

    Args:
        n: Number of disks to move
        from_peg: Source peg index
        to_peg: Destination peg index
        aux_peg: Intermediate peg index

    Example:
        >>> list(solve(2, 0, 2, 1))
        [(0, 1), (0, 2), (1, 2)]
    """
    if n < 1:
        return

    if n == 1:
        yield (from_peg, to_peg)
        return

    yield from solve(n - 1, from_peg, aux_peg, to_peg)
    yield (from_peg, to_peg)
    yield from solve(n - 1, aux_peg, to_peg, from_peg)
