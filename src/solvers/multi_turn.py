from collections import Counter
import logging
from typing import Any, Dict, List, Optional, Tuple, Union

from inspect_ai.model import (
    ChatMessage,
    ChatMessageAssistant,
    ChatMessageSystem,
    ChatMessageUser,
)
from inspect_ai.solver import Generate, TaskState, solver

from src.game.base import CompletionResult, InvalidMoveError, PuzzleContext
from src.game.tower_of_hanoi import GameState
from src.solvers.auto_play import AutoSolver
from src.utils.templates import TemplateManager

logger = logging.getLogger(__name__)


class MultiTurnSolver:
    """Lets a model play a game by submitting batches of moves each turn."""

    def __init__(
        self,
        game: GameState,
        config: Dict[str, Any],
        templates: Dict[str, str]
    ):
        """
        Args:
            game: Freshly reset game for the model to play
            config: Configuration dictionary with solver parameters
            templates: Dictionary of prompt templates (system, user_turn)
        """
        self.game = game
        self.config = config
        self.templates = templates
        self.template_manager = TemplateManager()

        self.window_size = config.get("window_size", 4)

        logger.debug(f"Initialized MultiTurnSolver with config: {config}")

    async def solve(self, state: TaskState, generate: Generate) -> TaskState:
        """
        Args:
            state: Current Inspect AI task state
            generate: Generate function for model interaction
        """

        try:
            context = PuzzleContext()

            system_message = ChatMessageSystem(content=self.templates.get("system", ""))
            context.full_conversation_history.append(system_message)

            termination_reason = ""
            while True:
                user_message = ChatMessageUser(content=self._build_user_message(context))
                state.messages = self._apply_sliding_window(context.full_conversation_history)
                state.messages.append(user_message)
                context.full_conversation_history.append(user_message)

                logger.debug(f"Turn {context.turn_count + 1}: Generating model response")
                state = await generate(state)
                context.full_conversation_history.append(
                    ChatMessageAssistant(content=state.output.completion)
                )
                moves, parse_error = self._process_model_response(state.output.completion)

                if not moves:
                    if parse_error:
                        logger.info(f"Parse error, treating as give up: {parse_error}")
                        termination_reason = "parse_error"
                    else:
                        logger.info("Model gave up")
                        termination_reason = "gave_up"
                    break

                result = self.game.apply_moves(moves)
                self._update_context_after_moves(context, result, moves)

                logger.debug(f"Turn {context.turn_count} completed: {len(moves)} moves attempted")
                should_terminate, termination_reason = self.should_terminate(context)
                if should_terminate:
                    break

            completion_result = CompletionResult(
                solved=self.game.check_win(),
                termination_reason=termination_reason,
                turns_taken=context.turn_count,
                total_moves_attempted=context.total_moves,
                invalid_turns=context.invalid_turns,
                successful_moves=context.successful_moves,
                disk_count=self.game.disk_count,
                move_count=self.game.move_count,
                min_moves=self.game.min_moves,
            )

            # Restore full conversation history
            state.messages = context.full_conversation_history
            state.metadata["puzzle_result_json"] = completion_result.to_json()
            state.metadata["puzzle_context"] = context.to_dict()
            logger.info(f"Game finished: {termination_reason}")
            return state

        except Exception as e:
            logger.error(f"Error while playing game: {e}")

            fallback_result = CompletionResult(
                solved=False,
                termination_reason="error",
                turns_taken=0,
                total_moves_attempted=0,
                invalid_turns=0,
                successful_moves=0,
                disk_count=self.game.disk_count,
                min_moves=self.game.min_moves,
            )
            state.metadata["puzzle_result_json"] = fallback_result.to_json()
            return state

    def _build_user_message(self, context: PuzzleContext) -> str:
        template = self.templates.get("user_turn", "")
        progress = f"Turn {context.turn_count + 1}" if context.turn_count > 0 else "This is your first turn."
        error_message = f"\nPrevious move was invalid: {context.recent_invalid_attempts[-1]}\n\n"\
             if context.recent_invalid_attempts else ""

        return self.template_manager.format_template(
            template,
            progress=progress,
            current_state=self.game.get_state(),
            error_message=error_message,
            move_format=self.game.get_move_format(),
            move_count=self.game.move_count,
            min_moves=self.game.min_moves,
        )

    def _apply_sliding_window(self, messages: List[ChatMessage]) -> List[ChatMessage]:
        """Keep the system message plus the most recent window_size messages."""
        system_message = messages[0] if (messages and messages[0].role == "system") else None
        start_index = 1 if system_message else 0

        if len(messages) <= self.window_size + start_index:
            return messages.copy()

        truncated_messages = [system_message] if system_message else []
        truncated_messages.append(ChatMessageSystem(
            content="[History truncated - earlier turns omitted]"
        ))
        truncated_messages.extend(messages[-self.window_size:])

        logger.debug(f"Applied sliding window: {len(messages)} -> {len(truncated_messages)} messages")
        return truncated_messages

    def _process_model_response(
        self,
        response: str
    ) -> Tuple[List[List[int]], Optional[str]]:
        """Extract moves from a model response.

        Returns:
            Tuple of (moves_list, error_message)
            - moves_list: Parsed moves or empty list if parsing failed
            - error_message: Error description if parsing failed, None otherwise
        """
        try:
            moves = self.game.parse_moves(response)
        except ValueError as e:
            error_msg = f"Failed to parse moves from response: {e!s}"
            logger.warning(f"Parse error: {error_msg}, raw response: {response}")
            return [], error_msg

        if not moves:
            logger.info("Model submitted empty move list (giving up)")
        else:
            logger.debug(f"Successfully parsed {len(moves)} moves: {moves}")
        return moves, None

    def _update_context_after_moves(
        self,
        context: PuzzleContext,
        result: Union[str, InvalidMoveError],
        moves: List[List[int]]
    ) -> None:
        context.turn_count += 1

        if isinstance(result, InvalidMoveError):
            context.invalid_turns += 1
            # Moves before the failing one were rolled back but still count as attempts
            context.total_moves += result.move_index + 1
            context.recent_invalid_attempts.append(str(result))
        else:
            context.successful_moves += len(moves)
            context.total_moves += len(moves)
            context.recent_invalid_attempts.clear()

        logger.debug(f"Updated state: {context.successful_moves}/{context.total_moves} moves successful")

    def should_terminate(self, context: PuzzleContext) -> Tuple[bool, str]:
        """Check if the game should stop.

        Conditions checked in priority order:
        1. Game is won
        2. Turn limit exceeded
        3. Move limit exceeded
        4. Repeated invalid attempts (stuck)
        5. State revisit loops detected
        """
        check_functions = [
            self._check_won,
            lambda: self._check_turn_limit(context),
            lambda: self._check_move_limit(context),
            lambda: self._check_repeated_invalid(context),
            self._check_state_loops,
        ]
        for check in check_functions:
            should_terminate, reason = check()
            if should_terminate:
                logger.info(f"Termination: {reason}")
                return True, reason

        return False, ""

    def _check_won(self) -> Tuple[bool, str]:
        return (True, "solved") if self.game.check_win() else (False, "")

    def _check_turn_limit(self, context: PuzzleContext) -> Tuple[bool, str]:
        max_turns = int(self.config.get("turn_limit_multiplier", 2.0) * self.game.min_moves)

        logger.debug(f"Turn limit check: {context.turn_count}/{max_turns} turns")
        return (True, "turn_limit") if context.turn_count >= max_turns else (False, "")

    def _check_move_limit(self, context: PuzzleContext) -> Tuple[bool, str]:
        max_moves = int(self.config.get("move_limit_multiplier", 10.0) * self.game.min_moves)

        logger.debug(f"Move limit check: {context.total_moves}/{max_moves} moves")
        return (True, "move_limit") if context.total_moves >= max_moves else (False, "")

    def _check_repeated_invalid(self, context: PuzzleContext) -> Tuple[bool, str]:
        repeated_invalid_limit = self.config.get("repeated_invalid_limit", 3)
        recent_attempts = context.recent_invalid_attempts

        return (True, "stuck_invalid") if len(recent_attempts) >= repeated_invalid_limit else (False, "")

    def _check_state_loops(self) -> Tuple[bool, str]:
        state_revisit_limit = self.config.get("state_revisit_limit", 2)
        state_counts = Counter(self.game.get_state_history())

        for game_state, count in state_counts.items():
            if count > state_revisit_limit:
                logger.debug(f"State loop detected: state visited {count} times:\n{game_state}")
                return True, "stuck_loop"

        return False, ""


@solver
def multi_turn_solver(config: Dict[str, Any], templates: Dict[str, str]):
    async def solve(state: TaskState, generate: Generate) -> TaskState:
        game = GameState(state.metadata.get("n", 3))
        return await MultiTurnSolver(game, config, templates).solve(state, generate)

    return solve


@solver
def auto_solve_solver():
    """Baseline player that replays the optimal recursive solution."""

    async def solve(state: TaskState, generate: Generate) -> TaskState:
        game = GameState(state.metadata.get("n", 3))
        applied = list(AutoSolver(game))

        completion_result = CompletionResult(
            solved=game.check_win(),
            termination_reason="solved" if game.check_win() else "incomplete",
            turns_taken=len(applied),
            total_moves_attempted=len(applied),
            invalid_turns=0,
            successful_moves=len(applied),
            disk_count=game.disk_count,
            move_count=game.move_count,
            min_moves=game.min_moves,
        )
        state.metadata["puzzle_result_json"] = completion_result.to_json()
        logger.info(f"Auto-solve baseline finished {game.disk_count} disks in {game.move_count} moves")
        return state

    return solve
