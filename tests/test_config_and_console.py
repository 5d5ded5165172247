import os
import sys

import pytest

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from src.cli import ConsoleGame, ConsoleListener, parse_disk_count, render_board
from src.game.tower_of_hanoi import GameState
from src.utils.config_loader import ConfigError, load_config, validate_config
from src.utils.templates import TemplateError, TemplateManager, format_template, load_templates

ROOT = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
DEFAULT_CONFIG = os.path.join(ROOT, "configs", "default.py")
CONSOLE_TEMPLATES = os.path.join(ROOT, "prompts", "console")
GAME_TEMPLATES = os.path.join(ROOT, "prompts", "hanoi_game")


class TestConfigLoader:
    """Loading and validating configuration modules."""

    def test_default_config_loads(self):
        config = load_config(DEFAULT_CONFIG)
        assert config["disk_count"] == 3
        assert config["auto_solve_delay"] == 0.6
        assert config["player"] == "model"

    def test_default_config_is_valid(self):
        config = load_config(DEFAULT_CONFIG)
        config["prompt_template_dir"] = GAME_TEMPLATES
        config["console_template_dir"] = CONSOLE_TEMPLATES
        assert validate_config(config) == []

    def test_default_config_has_only_used_settings(self):
        """Test the default config carries no setting the game never reads."""
        config = load_config(DEFAULT_CONFIG)
        assert set(config) == {
            "disk_count",
            "auto_solve_delay",
            "console_template_dir",
            "player",
            "model",
            "temperature",
            "disk_counts",
            "turn_limit_multiplier",
            "move_limit_multiplier",
            "repeated_invalid_limit",
            "state_revisit_limit",
            "prompt_template_dir",
            "window_size",
        }

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError):
            load_config(str(tmp_path / "missing.py"))

    def test_broken_file(self, tmp_path):
        path = tmp_path / "broken.py"
        path.write_text("disk_count = = 3\n")
        with pytest.raises(ConfigError):
            load_config(str(path))

    def test_private_names_and_callables_are_skipped(self, tmp_path):
        path = tmp_path / "custom.py"
        path.write_text("disk_count = 5\n_hidden = 1\ndef helper():\n    return 2\n")
        assert load_config(str(path)) == {"disk_count": 5}

    def test_validation_errors(self):
        config = {
            "player": "robot",
            "disk_counts": [3, 9],
            "disk_count": 2,
            "auto_solve_delay": -1,
            "turn_limit_multiplier": 0,
            "move_limit_multiplier": 10.0,
            "repeated_invalid_limit": "3",
            "state_revisit_limit": 2,
            "window_size": 4,
        }
        errors = validate_config(config)

        assert "Field 'player' must be one of model, recursive" in errors
        assert "disk_counts[1] must be an integer between 3 and 8" in errors
        assert "Field 'disk_count' must be between 3 and 8" in errors
        assert "Field 'auto_solve_delay' cannot be negative" in errors
        assert "Field 'turn_limit_multiplier' must be positive" in errors
        assert "Field 'repeated_invalid_limit' must be int, got str" in errors

    def test_missing_required_fields(self):
        errors = validate_config({"disk_count": 3}, required_fields={"disk_count", "auto_solve_delay"})
        assert errors == ["Missing required fields: auto_solve_delay"]


class TestTemplates:
    """Prompt and console templates."""

    def test_shipped_templates_load(self):
        assert {"board", "help", "win"} <= set(load_templates(CONSOLE_TEMPLATES))
        assert {"system", "user_turn"} <= set(load_templates(GAME_TEMPLATES))

    def test_missing_directory(self, tmp_path):
        with pytest.raises(TemplateError):
            load_templates(str(tmp_path / "nope"))

    def test_empty_directory(self, tmp_path):
        with pytest.raises(TemplateError):
            load_templates(str(tmp_path))

    def test_format_and_missing_variable(self):
        assert format_template("Moves: {move_count}", move_count=4) == "Moves: 4"
        with pytest.raises(TemplateError):
            format_template("Moves: {move_count}")

    def test_missing_template_vars(self):
        manager = TemplateManager()
        template = "{current_state} {{literal}} {move_count:03d}"
        assert manager.missing_template_vars(template, ["current_state", "move_count"]) == []
        assert manager.missing_template_vars(template, ["move_format", "literal"]) == ["literal", "move_format"]


class TestConsole:
    """Terminal front end."""

    def setup_method(self):
        self.templates = load_templates(CONSOLE_TEMPLATES)
        self.game = GameState(3, listeners=[ConsoleListener(self.templates)])
        self.console = ConsoleGame(self.game, self.templates, auto_solve_delay=0)

    def test_parse_disk_count(self):
        assert parse_disk_count("5") == 5
        assert parse_disk_count("lots") == 3
        assert parse_disk_count(None, default=6) == 6
        assert parse_disk_count("12") == 12

    def test_render_board(self):
        board = render_board([[2, 1], [], []], 2, selected_peg=0)
        lines = board.splitlines()
        assert lines[0] == "  =      |      |  "
        assert lines[1] == " ===     |      |  "
        assert lines[-1] == " [1]     2      3  "

    def test_clicks_move_disks(self, capsys):
        self.console.handle_command("1")
        self.console.handle_command("3")

        assert self.game.pegs == [[3, 2], [], [1]]
        out = capsys.readouterr().out
        assert "* tap * picked up from peg 1" in out
        assert "* drop * disk 1: peg 1 -> peg 3" in out
        assert "Moves: 1" in out

    def test_rejected_click(self, capsys):
        for command in ("1", "3", "1", "3"):
            self.console.handle_command(command)

        assert "Not allowed: Cannot place disk 2 on disk 1" in capsys.readouterr().out
        assert self.game.move_count == 1

    def test_new_game_clamps(self):
        self.console.handle_command("new 12")
        assert self.game.disk_count == 8
        self.console.handle_command("new")
        assert self.game.disk_count == 8
        self.console.handle_command("new abc")
        assert self.game.disk_count == 8

    def test_solve(self, capsys):
        self.console.handle_command("solve")

        assert self.game.check_win()
        assert self.game.move_count == 7
        assert "*** Solved! ***" in capsys.readouterr().out

    def test_quit_and_unknown(self, capsys):
        assert self.console.handle_command("dance")
        assert "Unknown command" in capsys.readouterr().out
        assert not self.console.handle_command("quit")
