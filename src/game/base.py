from dataclasses import asdict, dataclass, field
import json
from typing import Any, Dict, List, Optional

from inspect_ai.model import ChatMessage

PEG_COUNT = 3
MIN_DISKS = 3
MAX_DISKS = 8


@dataclass
class MoveResult:
    """Outcome of a successfully applied move.

    Attributes:
        from_peg: Peg the disk was taken from
        to_peg: Peg the disk was placed on
        moved_disk: Size of the disk that moved
        did_win: Whether the move completed the puzzle
    """

    from_peg: int
    to_peg: int
    moved_disk: int
    did_win: bool


@dataclass
class InvalidMoveError:
    """Represents a rejected move attempt.

    Attributes:
        from_peg: Source peg index
        to_peg: Destination peg index
        reason: Human-readable explanation of why the move was rejected
        move_index: Position of the move within a submitted batch, if any
    """

    from_peg: int
    to_peg: int
    reason: str
    move_index: Optional[int] = None

    @property
    def move(self) -> str:
        return str([self.from_peg, self.to_peg])

    def __str__(self) -> str:
        if self.move_index is None:
            return f'Invalid move "{self.move}": {self.reason}'
        return f'Invalid move "{self.move}" at index {self.move_index}: {self.reason}'


@dataclass
class PuzzleContext:
    """Tracks the progress of a model playing one game across multiple turns.

    Attributes:
        turn_count: Number of interaction turns completed
        total_moves: Total number of moves attempted (valid and invalid)
        invalid_turns: Number of turns that resulted in invalid moves
        successful_moves: Number of moves that were successfully applied
        recent_invalid_attempts: Invalid moves since the last accepted turn
        full_conversation_history: Every message exchanged, before windowing
    """

    turn_count: int = 0
    total_moves: int = 0
    invalid_turns: int = 0
    successful_moves: int = 0
    recent_invalid_attempts: List[str] = field(default_factory=list)
    full_conversation_history: List[ChatMessage] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["full_conversation_history"] = [
            {"role": message.role, "content": message.text}
            for message in self.full_conversation_history
        ]
        return data


@dataclass
class CompletionResult:
    """Final results and metrics from a finished game.

    Attributes:
        solved: Whether all disks reached the destination peg
        termination_reason: Why the game ended
        turns_taken: Number of interaction turns used
        total_moves_attempted: Total number of moves attempted
        invalid_turns: Number of turns with invalid moves
        successful_moves: Number of moves successfully applied
        disk_count: Number of disks in the game
        move_count: Value of the game's move counter at the end
        min_moves: Optimal move count for the disk count
    """

    solved: bool
    termination_reason: str
    turns_taken: int
    total_moves_attempted: int
    invalid_turns: int
    successful_moves: int
    disk_count: int
    move_count: int = 0
    min_moves: int = 0

    @property
    def efficiency(self) -> float:
        if not self.solved or self.move_count == 0:
            return 0.0
        return self.min_moves / self.move_count

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, json_str: str) -> "CompletionResult":
        data = json.loads(json_str)
        # Ignore keys that are not dataclass fields
        allowed_keys = {f.name for f in cls.__dataclass_fields__.values()}
        filtered_data = {k: v for k, v in data.items() if k in allowed_keys}
        return cls(**filtered_data)


class GameListener:
    """Receives notifications from a game so a front end can react.

    Every hook is a no-op by default; subclasses override the ones they need.
    """

    def on_reset(self, game: Any) -> None:
        """Called after the game is reset to a fresh puzzle."""

    def on_select(self, peg: int) -> None:
        """Called when a peg becomes selected."""

    def on_deselect(self, peg: int) -> None:
        """Called when a selection is explicitly cancelled, not when a move clears it."""

    def on_move(self, from_peg: int, to_peg: int, disk: int) -> None:
        """Called after a disk has moved."""

    def on_invalid_move(self, from_peg: int, to_peg: int, error: InvalidMoveError) -> None:
        """Called when a manual move attempt is rejected."""

    def on_win(self, move_count: int, min_moves: int) -> None:
        """Called when the last disk arrives on the destination peg."""

    def on_auto_solve_started(self) -> None:
        """Called when the automatic solver takes over the game."""

    def on_auto_solve_finished(self) -> None:
        """Called when the automatic solver releases the game."""
