import json
import logging
import re
from typing import List, Optional, Sequence, Union

from src.game.base import (
    MAX_DISKS,
    MIN_DISKS,
    PEG_COUNT,
    GameListener,
    InvalidMoveError,
    MoveResult,
)

logger = logging.getLogger(__name__)

DESTINATION_PEG = 2


def clamp_disk_count(disk_count: int) -> int:
    return max(MIN_DISKS, min(MAX_DISKS, disk_count))


def optimal_move_count(disk_count: int) -> int:
    return (2**disk_count) - 1


class GameState:
    """State of one Tower of Hanoi game.

    Holds the three pegs, the move counter and the manual-play selection. Pegs
    are exposed as copies; the only ways to change them are reset() and
    apply_move() (or click(), which goes through apply_move()).
    """

    def __init__(self, disk_count: int = MIN_DISKS, listeners: Optional[List[GameListener]] = None):
        self.listeners: List[GameListener] = list(listeners or [])
        self.reset(disk_count)

    @classmethod
    def from_layout(cls, pegs: Sequence[Sequence[int]]) -> "GameState":
        """Build a game from an explicit peg layout.

        The disk count is the number of disks in the layout and is not clamped.

        Raises:
            ValueError: If the layout breaks the stacking or uniqueness rules
        """
        if len(pegs) != PEG_COUNT:
            raise ValueError(f"Layout must have {PEG_COUNT} pegs, got {len(pegs)}")

        disks = [disk for peg in pegs for disk in peg]
        if any(not isinstance(disk, int) or disk < 1 for disk in disks):
            raise ValueError(f"Disk sizes must be positive integers: {disks}")
        if len(set(disks)) != len(disks):
            raise ValueError(f"Disk sizes must be unique: {disks}")
        for peg_idx, peg in enumerate(pegs):
            if any(lower <= upper for lower, upper in zip(peg, peg[1:])):
                raise ValueError(f"Peg {peg_idx} is not stacked largest to smallest: {list(peg)}")

        game = cls.__new__(cls)
        game.listeners = []
        game._disk_count = len(disks)
        game._min_moves = optimal_move_count(len(disks))
        game._pegs = [list(peg) for peg in pegs]
        game._move_count = 0
        game._selected_peg = None
        game._is_auto_solving = False
        game._state_history = [game.get_state()]
        return game

    def add_listener(self, listener: GameListener) -> None:
        self.listeners.append(listener)

    def remove_listener(self, listener: GameListener) -> None:
        self.listeners.remove(listener)

    def _notify(self, hook: str, *args) -> None:
        for listener in self.listeners:
            getattr(listener, hook)(*args)

    @property
    def pegs(self) -> List[List[int]]:
        return [list(peg) for peg in self._pegs]

    @property
    def disk_count(self) -> int:
        return self._disk_count

    @property
    def move_count(self) -> int:
        return self._move_count

    @property
    def min_moves(self) -> int:
        return self._min_moves

    @property
    def selected_peg(self) -> Optional[int]:
        return self._selected_peg

    @property
    def is_auto_solving(self) -> bool:
        return self._is_auto_solving

    def reset(self, disk_count: int) -> None:
        """Start a fresh puzzle with all disks stacked on peg 0.

        Out-of-range disk counts are clamped into [3, 8].
        """
        clamped = clamp_disk_count(disk_count)
        if clamped != disk_count:
            logger.debug(f"Clamped disk count {disk_count} to {clamped}")

        self._disk_count = clamped
        self._min_moves = optimal_move_count(clamped)
        self._is_auto_solving = False
        self._stack_start_position()

        logger.info(f"New game with {clamped} disks (minimum {self._min_moves} moves)")
        self._notify("on_reset", self)

    def _stack_start_position(self) -> None:
        self._pegs = [list(range(self._disk_count, 0, -1)), [], []]
        self._move_count = 0
        self._selected_peg = None
        self._state_history = [self.get_state()]

    def get_top_disk(self, peg: int) -> Optional[int]:
        if not self._pegs[peg]:
            return None

        return self._pegs[peg][-1]

    def _check_peg_index(self, peg: int) -> None:
        assert isinstance(peg, int) and 0 <= peg < PEG_COUNT, f"Invalid peg index: {peg}"

    def _validate_move(self, from_peg: int, to_peg: int) -> Optional[str]:
        """Return the reason a move is illegal, or None when it is legal."""
        self._check_peg_index(from_peg)
        self._check_peg_index(to_peg)

        moving = self.get_top_disk(from_peg)
        if moving is None:
            return f"Peg {from_peg} is empty"

        destination_top = self.get_top_disk(to_peg)
        if destination_top is None:
            return None

        if moving >= destination_top:
            return (
                f"Cannot place disk {moving} on disk {destination_top}: "
                f"a disk may only rest on a larger disk"
            )
        return None

    def is_valid_move(self, from_peg: int, to_peg: int) -> bool:
        return self._validate_move(from_peg, to_peg) is None

    def apply_move(self, from_peg: int, to_peg: int) -> Union[MoveResult, InvalidMoveError]:
        """Move the top disk of from_peg onto to_peg.

        Returns:
            MoveResult if the move was applied, or InvalidMoveError when it was
            rejected. A rejected move leaves the game untouched.
        """
        reason = self._validate_move(from_peg, to_peg)
        if reason is not None:
            logger.debug(f"Rejected move {from_peg} -> {to_peg}: {reason}")
            return InvalidMoveError(from_peg=from_peg, to_peg=to_peg, reason=reason)

        disk = self._move_disk(from_peg, to_peg)
        self._notify("on_move", from_peg, to_peg, disk)

        did_win = self.check_win()
        if did_win:
            logger.info(f"Solved in {self._move_count} moves (minimum {self._min_moves})")
            self._notify("on_win", self._move_count, self._min_moves)

        return MoveResult(from_peg=from_peg, to_peg=to_peg, moved_disk=disk, did_win=did_win)

    def _move_disk(self, from_peg: int, to_peg: int) -> int:
        """Move a disk without validation or notification."""
        disk = self._pegs[from_peg].pop()
        self._pegs[to_peg].append(disk)
        self._move_count += 1
        self._selected_peg = None
        self._state_history.append(self.get_state())
        logger.debug(f"Moved disk {disk} from peg {from_peg} to peg {to_peg} (move {self._move_count})")
        return disk

    def check_win(self) -> bool:
        return len(self._pegs[DESTINATION_PEG]) == self._disk_count

    def select(self, peg: int) -> None:
        self._check_peg_index(peg)
        if self._is_auto_solving or not self._pegs[peg]:
            return

        self._selected_peg = peg
        self._notify("on_select", peg)

    def deselect(self) -> None:
        if self._selected_peg is None:
            return

        peg = self._selected_peg
        self._selected_peg = None
        self._notify("on_deselect", peg)

    def click(self, peg: int) -> Optional[Union[MoveResult, InvalidMoveError]]:
        """Handle a manual click on a peg.

        Returns the move outcome when the click attempted a move, otherwise None.
        """
        self._check_peg_index(peg)
        if self._is_auto_solving:
            logger.debug(f"Ignoring click on peg {peg} during auto-solve")
            return None

        if self._selected_peg is None:
            self.select(peg)
            return None

        if self._selected_peg == peg:
            self.deselect()
            return None

        from_peg = self._selected_peg
        result = self.apply_move(from_peg, peg)
        self._selected_peg = None
        if isinstance(result, InvalidMoveError):
            self._notify("on_invalid_move", from_peg, peg, result)
        return result

    def begin_auto_solve(self) -> None:
        """Restore the starting layout and hand the game to the automatic solver."""
        self._stack_start_position()
        self._is_auto_solving = True
        self._notify("on_reset", self)
        self._notify("on_auto_solve_started")

    def end_auto_solve(self) -> None:
        self._is_auto_solving = False
        self._notify("on_auto_solve_finished")

    def apply_moves(self, moves: List[List[int]]) -> Union[str, InvalidMoveError]:
        """Apply a list of [from_peg, to_peg] moves with atomic rollback.

        If any move fails, the pegs, move counter, selection and state history
        are restored and the error for the first failing move is returned.
        Listeners only hear about a batch once all of it has been applied.
        """
        if not moves:
            return self.get_state()

        logger.debug(f"Taking state snapshot before applying {len(moves)} moves")
        pegs_snapshot = self.pegs
        move_count_snapshot = self._move_count
        selected_snapshot = self._selected_peg
        history_snapshot = self._state_history.copy()

        applied = []
        for move_index, move in enumerate(moves):
            from_peg, to_peg = move
            if not all(isinstance(p, int) and 0 <= p < PEG_COUNT for p in (from_peg, to_peg)):
                reason = "Peg indices must be 0, 1, or 2"
            else:
                reason = self._validate_move(from_peg, to_peg)
            if reason is None:
                applied.append((from_peg, to_peg, self._move_disk(from_peg, to_peg)))
                continue

            logger.debug(f"Move failed at index {move_index}, rolling back")
            self._pegs = pegs_snapshot
            self._move_count = move_count_snapshot
            self._selected_peg = selected_snapshot
            self._state_history = history_snapshot
            return InvalidMoveError(
                from_peg=from_peg,
                to_peg=to_peg,
                reason=reason,
                move_index=move_index,
            )

        for from_peg, to_peg, disk in applied:
            self._notify("on_move", from_peg, to_peg, disk)
        if self.check_win():
            logger.info(f"Solved in {self._move_count} moves (minimum {self._min_moves})")
            self._notify("on_win", self._move_count, self._min_moves)

        logger.debug(f"Successfully applied {len(moves)} moves")
        return self.get_state()

    def get_state(self) -> str:
        """Return formatted state string.

        Returns:
            String representation in format:
            "Peg 0: 3 (bottom), 2, 1 (top)\nPeg 1: (empty)\nPeg 2: (empty)"
        """
        lines = []

        for peg_idx, peg_disks in enumerate(self._pegs):
            if not peg_disks:
                lines.append(f"Peg {peg_idx}: (empty)")
            elif len(peg_disks) == 1:
                lines.append(f"Peg {peg_idx}: {peg_disks[0]}")
            else:
                disk_parts = [f"{peg_disks[0]} (bottom)"]
                disk_parts.extend(map(str, peg_disks[1:-1]))
                disk_parts.append(f"{peg_disks[-1]} (top)")
                lines.append(f"Peg {peg_idx}: {', '.join(disk_parts)}")

        return "\n".join(lines)

    def get_state_history(self) -> List[str]:
        """Get history of states for loop detection."""
        return self._state_history.copy()

    def parse_moves(self, text: str) -> List[List[int]]:
        """Parse text into a move list.

        Supports the JSON format [[0, 2], [0, 1]]; the last such list wins.
        """
        if not text or not isinstance(text, str):
            raise ValueError("Failed to parse moves: input was empty or not a string")

        if text.strip() == "[]":
            return []

        json_pattern = r"(\[\s*\[\s*\d+\s*,\s*\d+\s*\](?:\s*,\s*\[\s*\d+\s*,\s*\d+\s*\])*\s*\])"
        json_matches = re.findall(json_pattern, text)

        if json_matches:
            try:
                json_result = json.loads(json_matches[-1])
            except json.JSONDecodeError as e:
                raise ValueError(f"Failed to parse moves: {e}") from e
            if json_result and isinstance(json_result, list):
                return json_result

        raise ValueError(f"Failed to parse moves: {text}")

    def get_move_format(self) -> str:
        """Return string describing expected move format."""
        return "[[from_peg, to_peg], ...]"

    def __str__(self) -> str:
        return f"GameState({self._disk_count} disks, {self._move_count} moves):\n{self.get_state()}"
