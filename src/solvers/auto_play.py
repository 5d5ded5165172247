import asyncio
import logging
from typing import Callable, Iterator, List, Optional

from src.game.base import InvalidMoveError, MoveResult
from src.game.tower_of_hanoi import DESTINATION_PEG, GameState
from src.solvers.recursive import solve

logger = logging.getLogger(__name__)

SOURCE_PEG = 0
AUX_PEG = 1


class AutoSolveError(Exception):
    """Raised when a solver move is rejected by the game it is driving."""

    def __init__(self, error: InvalidMoveError):
        self.error = error
        super().__init__(f"Auto-solve move rejected: {error}")


class AutoSolver:
    """Drives a GameState through the optimal solution one move at a time.

    Each call to step() applies exactly one move and then returns control to
    the caller, who decides when to ask for the next one.
    """

    def __init__(self, game: GameState):
        self.game = game
        self._moves: Optional[Iterator] = None
        self._cancel_requested = False
        self.finished = False

    @property
    def running(self) -> bool:
        return self._moves is not None

    def start(self) -> bool:
        """Restore the starting layout and take control of the game.

        Returns:
            False if the game is already being auto-solved, True otherwise
        """
        if self.game.is_auto_solving:
            logger.debug("Auto-solve already in progress")
            return False

        self.game.begin_auto_solve()
        self._moves = solve(self.game.disk_count, SOURCE_PEG, DESTINATION_PEG, AUX_PEG)
        self._cancel_requested = False
        self.finished = False
        logger.info(f"Auto-solving {self.game.disk_count} disks in {self.game.min_moves} moves")
        return True

    def cancel(self) -> None:
        """Ask the driver to stop before its next move."""
        self._cancel_requested = True

    def step(self) -> Optional[MoveResult]:
        """Apply the next move.

        Returns:
            The applied move, or None once the solution is exhausted or cancelled

        Raises:
            AutoSolveError: If the game rejects a solver move
        """
        if self._moves is None:
            return None

        if self._cancel_requested:
            logger.info(f"Auto-solve cancelled after {self.game.move_count} moves")
            self._finish()
            return None

        move = next(self._moves, None)
        if move is None:
            self._finish()
            return None

        result = self.game.apply_move(*move)
        if isinstance(result, InvalidMoveError):
            self._finish()
            raise AutoSolveError(result)
        return result

    def _finish(self) -> None:
        self._moves = None
        self.finished = not self._cancel_requested
        self.game.end_auto_solve()
        logger.info(f"Auto-solve finished at {self.game.move_count} moves")

    def __iter__(self) -> Iterator[MoveResult]:
        if not self.running:
            self.start()
        try:
            while True:
                result = self.step()
                if result is None:
                    return
                yield result
        finally:
            # Closed early by the consumer
            if self.running:
                self.cancel()
                self.step()


async def run_auto_solve(
    game: GameState,
    delay: float = 0.6,
    on_step: Optional[Callable[[MoveResult], None]] = None,
) -> List[MoveResult]:
    """Auto-solve a game, pausing between moves so a front end can animate.

    Returns:
        The applied moves in order; empty if the game was already auto-solving
    """
    driver = AutoSolver(game)
    if not driver.start():
        return []

    applied = []
    try:
        while True:
            await asyncio.sleep(delay)
            result = driver.step()
            if result is None:
                break
            applied.append(result)
            if on_step is not None:
                on_step(result)
    finally:
        # Release the game when cancelled or when a callback raises
        if driver.running:
            driver.cancel()
            driver.step()

    return applied
