import argparse
import asyncio
import logging
from typing import Dict, List, Optional

from src.game.base import MAX_DISKS, MIN_DISKS, GameListener, InvalidMoveError
from src.game.tower_of_hanoi import GameState
from src.solvers.auto_play import run_auto_solve
from src.utils.config_loader import DEFAULT_CONFIG_PATH, ConfigError, load_config, validate_config
from src.utils.templates import TemplateError, TemplateManager

logger = logging.getLogger(__name__)

CONSOLE_FIELDS = {"disk_count", "auto_solve_delay", "console_template_dir"}


def parse_disk_count(text: Optional[str], default: int = MIN_DISKS) -> int:
    """Read a disk count from user input, falling back to the default on junk.

    The result is not clamped; GameState.reset() does that.
    """
    try:
        return int(text) if text else default
    except ValueError:
        return default


def render_board(pegs: List[List[int]], disk_count: int, selected_peg: Optional[int] = None) -> str:
    """Draw the pegs side by side, largest disk at the bottom."""
    width = 2 * disk_count + 1
    rows = []
    for level in range(disk_count - 1, -1, -1):
        cells = []
        for peg in pegs:
            if level < len(peg):
                disk = peg[level]
                cells.append(("=" * (2 * disk - 1)).center(width))
            else:
                cells.append("|".center(width))
        rows.append("  ".join(cells))

    labels = []
    for peg_idx in range(len(pegs)):
        label = f"[{peg_idx + 1}]" if peg_idx == selected_peg else str(peg_idx + 1)
        labels.append(label.center(width))
    rows.append("  ".join("-" * width for _ in pegs))
    rows.append("  ".join(labels))
    return "\n".join(rows)


class ConsoleListener(GameListener):
    """Prints the cues a graphical front end would play as sounds and animations."""

    def __init__(self, templates: Dict[str, str]):
        self.templates = templates
        self.template_manager = TemplateManager()

    def on_select(self, peg: int) -> None:
        print(f"* tap * picked up from peg {peg + 1}")

    def on_deselect(self, peg: int) -> None:
        print(f"* tap * put back on peg {peg + 1}")

    def on_move(self, from_peg: int, to_peg: int, disk: int) -> None:
        print(f"* drop * disk {disk}: peg {from_peg + 1} -> peg {to_peg + 1}")

    def on_invalid_move(self, from_peg: int, to_peg: int, error: InvalidMoveError) -> None:
        print(f"Not allowed: {error.reason}")

    def on_win(self, move_count: int, min_moves: int) -> None:
        print(self.template_manager.format_template(
            self.templates["win"], move_count=move_count, min_moves=min_moves
        ))

    def on_auto_solve_started(self) -> None:
        print("Solving...")

    def on_auto_solve_finished(self) -> None:
        print("Solver finished.")


class ConsoleGame:
    """Reads commands from stdin and routes them to a GameState."""

    def __init__(self, game: GameState, templates: Dict[str, str], auto_solve_delay: float = 0.6):
        self.game = game
        self.templates = templates
        self.template_manager = TemplateManager()
        self.auto_solve_delay = auto_solve_delay

    def board_text(self) -> str:
        selection = ""
        if self.game.selected_peg is not None:
            selection = f"   Holding disk from peg {self.game.selected_peg + 1}"
        return self.template_manager.format_template(
            self.templates["board"],
            board=render_board(self.game.pegs, self.game.disk_count, self.game.selected_peg),
            move_count=self.game.move_count,
            min_moves=self.game.min_moves,
            selection=selection,
        )

    def help_text(self) -> str:
        return self.template_manager.format_template(
            self.templates["help"], min_disks=MIN_DISKS, max_disks=MAX_DISKS
        )

    def handle_command(self, line: str) -> bool:
        """Run one command. Returns False when the player wants to quit."""
        parts = line.strip().lower().split()
        if not parts:
            return True

        command, args = parts[0], parts[1:]
        if command in ("quit", "exit", "q"):
            return False

        if command == "help":
            print(self.help_text())
        elif command == "new":
            default = self.game.disk_count
            self.game.reset(parse_disk_count(args[0] if args else None, default))
        elif command == "solve":
            asyncio.run(run_auto_solve(
                self.game,
                delay=self.auto_solve_delay,
                on_step=lambda _: print(self.board_text()),
            ))
        elif command in ("1", "2", "3"):
            self.game.click(int(command) - 1)
        else:
            logger.warning(f"Unknown command: {line.strip()}")
            print('Unknown command, type "help" for the list.')
            return True

        print(self.board_text())
        return True

    def run(self) -> None:
        print(self.help_text())
        print(self.board_text())
        while True:
            try:
                line = input("> ")
            except EOFError:
                break
            if not self.handle_command(line):
                break


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="hanoi-game", description="Play the Tower of Hanoi in the terminal.")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to a configuration module")
    parser.add_argument("--disks", help=f"Number of disks ({MIN_DISKS}-{MAX_DISKS})")
    parser.add_argument("--delay", type=float, help="Seconds between moves when auto-solving")
    parser.add_argument("--log-level", default="WARNING", help="Logging level")
    return parser


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    try:
        config = load_config(args.config)
        errors = validate_config(config, required_fields=CONSOLE_FIELDS)
        if errors:
            raise ConfigError("; ".join(errors), args.config)
        templates = TemplateManager().load_templates(config["console_template_dir"])
    except (ConfigError, TemplateError) as e:
        logger.error(str(e))
        return 1

    listener = ConsoleListener(templates)
    game = GameState(
        parse_disk_count(args.disks, config["disk_count"]),
        listeners=[listener],
    )
    delay = args.delay if args.delay is not None else config["auto_solve_delay"]

    ConsoleGame(game, templates, auto_solve_delay=delay).run()
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
