import logging
from typing import Any, Dict, List

from dotenv import load_dotenv
from inspect_ai import Task, task
from inspect_ai.dataset import Sample
from inspect_ai.model import GenerateConfig

from src.game.tower_of_hanoi import optimal_move_count
from src.scorers.basic_scorers import (
    game_won_scorer,
    invalid_turns_scorer,
    move_efficiency_scorer,
    moves_used_scorer,
    turns_taken_scorer,
)
from src.solvers.multi_turn import auto_solve_solver, multi_turn_solver
from src.utils.config_loader import ConfigError, load_config, validate_config
from src.utils.templates import TemplateManager, load_templates

logger = logging.getLogger(__name__)
load_dotenv()

REQUIRED_TEMPLATE_VARS = {
    "user_turn": ["current_state", "move_format"],
}


def create_samples(config: Dict[str, Any]) -> List[Sample]:
    """Create one sample per configured disk count."""
    try:
        disk_counts = config["disk_counts"]
    except KeyError as e:
        raise ValueError(f"Missing required config key: {e}") from e

    samples = [
        Sample(
            input="",  # Built by the solver
            metadata={
                "n": n,
                "optimal_moves": optimal_move_count(n),
            },
        )
        for n in disk_counts
    ]

    logger.info(f"Created {len(samples)} samples for disk counts: {disk_counts}")
    return samples


def validate_task_config(config: Dict[str, Any], templates: Dict[str, str]) -> None:
    """Validate task configuration and templates.

    Raises:
        ConfigError: If the configuration is unusable
        ValueError: If a required template or template variable is missing
    """
    errors = validate_config(config)
    if errors:
        raise ConfigError("; ".join(errors))

    manager = TemplateManager()
    for name, required_vars in REQUIRED_TEMPLATE_VARS.items():
        if name not in templates:
            raise ValueError(f"Missing required template: {name}")
        missing = manager.missing_template_vars(templates[name], required_vars)
        if missing:
            raise ValueError(f"Template '{name}' is missing variables: {', '.join(missing)}")

    logger.info("Task configuration validation passed")


@task
def hanoi_game_eval(config_path: str = "configs/default.py") -> Task:
    """Tower of Hanoi game played by a model, or by the recursive baseline.

    Example:
        ```bash
        # Let the configured model play
        inspect eval src/run_game.py

        # Custom config
        inspect eval src/run_game.py -T config_path=configs/experiment_001.py

        # Model override
        inspect eval src/run_game.py --model openai/gpt-4
        ```
    """
    config = load_config(config_path)

    template_dir = config.get("prompt_template_dir", "./prompts/hanoi_game/")
    templates = load_templates(template_dir)

    validate_task_config(config, templates)

    if config["player"] == "recursive":
        player = auto_solve_solver()
    else:
        player = multi_turn_solver(config, templates)

    task_obj = Task(
        dataset=create_samples(config),
        solver=player,
        scorer=[
            game_won_scorer(),
            moves_used_scorer(),
            move_efficiency_scorer(),
            turns_taken_scorer(),
            invalid_turns_scorer(),
        ],
        model=config.get("model"),
        config=GenerateConfig(temperature=config.get("temperature", 1.0)),
    )

    logger.info(f"Task configuration: "
               f"player={config['player']}, "
               f"model={config.get('model')}, "
               f"disk_counts={config['disk_counts']}")

    return task_obj
