"""Configuration constants for prompt battle application."""

import json
import os

# Evaluator API
API_BASE_URL = 'https://api.openai.com/v1'
CHAT_ENDPOINT = '/chat/completions'
DEFAULT_MODEL = 'gpt-4o'
GEMINI_MODEL = 'gemini-2.0-flash'
MAX_TOKENS = 2000
TEMPERATURE = 0.7
REQUEST_TIMEOUT = 60          # seconds

# Round timing
SCENARIO_COUNTDOWN = 15       # seconds to read the scenario
PROMPT_TIME_LIMIT = 120       # seconds to craft the prompt
TIMER_WARNING_THRESHOLD = 30
TIMER_DANGER_THRESHOLD = 10
MIN_PROMPT_LENGTH = 10
MAX_PROMPT_LENGTH = 2000

# Scoring
MAX_SCORE = 10
SUB_SCORE_MAX = {
    'ai_evaluation': 4,
    'format_quality': 2,
    'efficiency': 2,
    'technical_accuracy': 2
}
PERFECT_SCORE_THRESHOLD = 10
WIN_SCORE_THRESHOLD = 7

# XP and leveling
BASE_XP_PER_BATTLE = 50
XP_PER_SCORE_POINT = 10
PERFECT_SCORE_BONUS = 100
WIN_BONUS = 50
LEVEL_XP_MULTIPLIER = 1.5

LEVELS = [
    {'level': 1, 'name': 'Prompt Apprentice', 'xp_required': 0},
    {'level': 2, 'name': 'Prompt Practitioner', 'xp_required': 100},
    {'level': 3, 'name': 'Prompt Specialist', 'xp_required': 250},
    {'level': 4, 'name': 'Prompt Master', 'xp_required': 500},
    {'level': 5, 'name': 'Prompt Engineering Expert', 'xp_required': 1000}
]

# History
HISTORY_LIMIT = 50             # battles kept, newest first
PLAYGROUND_HISTORY_LIMIT = 20  # saved playground reviews
RECENT_HISTORY_COUNT = 10      # battles shown on the profile
TEAM_NAME_MAX_LENGTH = 20

# Storage keys (one key-value entry each)
STORAGE_PROFILE = 'promptBattle_profile'
STORAGE_BATTLE_HISTORY = 'promptBattle_history'
STORAGE_LEADERBOARD = 'promptBattle_leaderboard'
STORAGE_PLAYGROUND_HISTORY = 'promptBattle_playground_history'

EXPORT_VERSION = '1.0.0'

TIPS = [
    'Be specific and clear in your instructions.',
    'Define the role the AI should take (e.g., "You are a technical writer").',
    'Specify the output format you want (e.g., bullet points, JSON, table).',
    'Include examples when helpful to guide the AI.',
    'Use structured formatting with line breaks and sections.',
    'Define constraints (e.g., word count, tone, style).',
    'Test your prompts - think about edge cases.',
    'Use positive instructions ("Do this") rather than negative ("Don\'t do that").',
    'Break complex tasks into steps.',
    'Review the AI output carefully before submitting.'
]

DEFAULT_CONFIG_FILE = os.path.expanduser('~/.config/prompt_battle/config.json')


def load_config(path: str = None) -> dict:
    """Load the optional JSON config file.

    Raises FileNotFoundError when the file does not exist.
    """
    config_file = path or os.environ.get('PROMPT_BATTLE_CONFIG', DEFAULT_CONFIG_FILE)
    if not os.path.exists(config_file):
        raise FileNotFoundError(
            f"Config file not found at {config_file}\n"
            f'Please create it with: {{"openai_api_key": "YOUR_API_KEY_HERE"}}'
        )
    with open(config_file, 'r') as f:
        return json.load(f)
