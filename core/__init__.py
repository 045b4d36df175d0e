from .models import (
    Scenario, EvaluationResult, BattleRecord, ReviewRecord,
    BattleHistory, ReviewHistory, Profile, ProfileError
)
from .interfaces import AIProvider, Storage
from .levels import level_for_xp, xp_for_level, get_level_name
from .evaluation import parse_evaluation, heuristic_evaluation, normalize_evaluation, EvaluationParseError
from .coach import PromptCoach
from .session import BattleSession, Phase, PhaseError, PromptValidationError, validate_prompt
from .leaderboard import Leaderboard
from .game import SessionContext
from .config import (
    LEVELS, MAX_SCORE, PERFECT_SCORE_THRESHOLD, WIN_SCORE_THRESHOLD,
    HISTORY_LIMIT, SCENARIO_COUNTDOWN, PROMPT_TIME_LIMIT
)

__all__ = [
    'Scenario', 'EvaluationResult', 'BattleRecord', 'ReviewRecord',
    'BattleHistory', 'ReviewHistory', 'Profile', 'ProfileError',
    'AIProvider', 'Storage',
    'level_for_xp', 'xp_for_level', 'get_level_name',
    'parse_evaluation', 'heuristic_evaluation', 'normalize_evaluation', 'EvaluationParseError',
    'PromptCoach',
    'BattleSession', 'Phase', 'PhaseError', 'PromptValidationError', 'validate_prompt',
    'Leaderboard', 'SessionContext',
    'LEVELS', 'MAX_SCORE', 'PERFECT_SCORE_THRESHOLD', 'WIN_SCORE_THRESHOLD',
    'HISTORY_LIMIT', 'SCENARIO_COUNTDOWN', 'PROMPT_TIME_LIMIT'
]
