"""Default configuration for the Tower of Hanoi game."""

# Console game
disk_count = 3
auto_solve_delay = 0.6        # Seconds between automatic moves
console_template_dir = "./prompts/console/"

# Model evaluation
player = "model"              # "model" or "recursive"
model = "openrouter/google/gemini-2.5-pro"
temperature = 1.0
disk_counts = [3, 4, 5]

# Scaling multipliers (relative to optimal moves)
turn_limit_multiplier = 2.0   # 2x optimal assumes 1 move per turn worst case
move_limit_multiplier = 10.0  # 10x optimal for total attempts

# Termination conditions
repeated_invalid_limit = 3    # Stop after 3 consecutive invalid turns
state_revisit_limit = 2       # Stop after visiting same state more than twice

prompt_template_dir = "./prompts/hanoi_game/"

# Sliding window size (messages to keep)
window_size = 4  # 2 complete exchanges
