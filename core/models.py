"""Domain models for prompt battle application."""

import math

from .config import (
    BASE_XP_PER_BATTLE, XP_PER_SCORE_POINT,
    PERFECT_SCORE_BONUS, WIN_BONUS,
    PERFECT_SCORE_THRESHOLD, WIN_SCORE_THRESHOLD,
    HISTORY_LIMIT, PLAYGROUND_HISTORY_LIMIT, RECENT_HISTORY_COUNT,
    TEAM_NAME_MAX_LENGTH
)
from .levels import level_for_xp
from .utils import generate_id, round_half_up, utc_now_iso


class ProfileError(ValueError):
    """Invalid profile data."""


class Scenario:
    """A single prompt-crafting challenge. Read-only once loaded."""

    def __init__(self, id: str, title: str, description: str, criteria: list[str],
                 data: str, poor_prompt: str = None, poor_prompt_issues: list[str] = None):
        self.id = id
        self.title = title
        self.description = description
        self.criteria = list(criteria)
        self.data = data
        self.poor_prompt = poor_prompt
        self.poor_prompt_issues = list(poor_prompt_issues or [])

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'criteria': list(self.criteria),
            'data': self.data,
            'poorPrompt': self.poor_prompt,
            'poorPromptIssues': list(self.poor_prompt_issues)
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Scenario':
        return cls(
            data['id'], data['title'], data['description'],
            data.get('criteria', []), data.get('data', ''),
            data.get('poorPrompt'), data.get('poorPromptIssues')
        )


class EvaluationResult:
    """Canonical score and feedback record for one submitted prompt."""

    def __init__(self, scores: dict, total_score: float, feedback: dict, is_fallback: bool = False):
        self.scores = scores
        self.total_score = total_score
        self.feedback = feedback
        self.is_fallback = is_fallback

    def to_dict(self) -> dict:
        return {
            'scores': dict(self.scores),
            'total_score': self.total_score,
            'feedback': {k: list(v) for k, v in self.feedback.items()},
            'is_fallback': self.is_fallback
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'EvaluationResult':
        return cls(data['scores'], data['total_score'], data['feedback'],
                   data.get('is_fallback', False))

    @property
    def display_score(self) -> float:
        """Total score rounded to one decimal, the value XP is computed from."""
        return round_half_up(self.total_score, 1)


class BattleRecord:
    """One completed round. Immutable once created."""

    def __init__(self, id: str, scenario_id: str, scenario_title: str, scenario_description: str,
                 scenario_data: str, scenario_criteria: list[str], prompt: str, score: float,
                 xp_earned: int, date: str, time_taken: int):
        self.id = id
        self.scenario_id = scenario_id
        self.scenario_title = scenario_title
        self.scenario_description = scenario_description
        self.scenario_data = scenario_data
        self.scenario_criteria = list(scenario_criteria or [])
        self.prompt = prompt
        self.score = score
        self.xp_earned = xp_earned
        self.date = date
        self.time_taken = time_taken

    @classmethod
    def create(cls, scenario: Scenario, prompt: str, score: float, xp_earned: int,
               time_taken: int) -> 'BattleRecord':
        return cls(
            id=generate_id('battle_'),
            scenario_id=scenario.id,
            scenario_title=scenario.title,
            scenario_description=scenario.description,
            scenario_data=scenario.data,
            scenario_criteria=scenario.criteria,
            prompt=prompt,
            score=score,
            xp_earned=xp_earned,
            date=utc_now_iso(),
            time_taken=time_taken
        )

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'scenarioId': self.scenario_id,
            'scenarioTitle': self.scenario_title,
            'scenarioDescription': self.scenario_description,
            'scenarioData': self.scenario_data,
            'scenarioCriteria': list(self.scenario_criteria),
            'prompt': self.prompt,
            'score': self.score,
            'xpEarned': self.xp_earned,
            'date': self.date,
            'timeTaken': self.time_taken
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'BattleRecord':
        return cls(
            data['id'], data.get('scenarioId'), data.get('scenarioTitle', ''),
            data.get('scenarioDescription', ''), data.get('scenarioData', ''),
            data.get('scenarioCriteria', []), data.get('prompt', ''),
            data.get('score', 0), data.get('xpEarned', 0),
            data.get('date'), data.get('timeTaken', 0)
        )


class ReviewRecord:
    """A saved playground review."""

    def __init__(self, id: str, prompt: str, context: str, score: float | None, date: str):
        self.id = id
        self.prompt = prompt
        self.context = context
        self.score = score
        self.date = date

    @classmethod
    def create(cls, prompt: str, context: str = '', score: float = None) -> 'ReviewRecord':
        return cls(generate_id('review_'), prompt.strip(), (context or '').strip(), score, utc_now_iso())

    def to_dict(self) -> dict:
        return {
            'id': self.id,
            'prompt': self.prompt,
            'context': self.context,
            'score': self.score,
            'date': self.date
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'ReviewRecord':
        return cls(data['id'], data.get('prompt', ''), data.get('context', ''),
                   data.get('score'), data.get('date'))


class BattleHistory:
    """Bounded log of past rounds, newest first."""

    limit = HISTORY_LIMIT
    record_class = BattleRecord

    def __init__(self, records: list = None):
        self.records = list(records or [])

    def __len__(self) -> int:
        return len(self.records)

    def append(self, record) -> None:
        """Prepend a record and evict the oldest past the limit."""
        self.records.insert(0, record)
        if len(self.records) > self.limit:
            self.records = self.records[:self.limit]

    def recent(self, n: int = RECENT_HISTORY_COUNT) -> list:
        return self.records[:n]

    def find(self, record_id: str):
        for record in self.records:
            if record.id == record_id:
                return record
        return None

    def to_list(self) -> list[dict]:
        return [r.to_dict() for r in self.records]

    @classmethod
    def from_list(cls, data: list | None):
        records = []
        for item in data or []:
            try:
                records.append(cls.record_class.from_dict(item))
            except (KeyError, TypeError):
                # Corrupt entry
                continue
        return cls(records[:cls.limit])


class ReviewHistory(BattleHistory):
    """Bounded log of saved playground reviews."""

    limit = PLAYGROUND_HISTORY_LIMIT
    record_class = ReviewRecord


class Profile:
    """Player profile and progression counters."""

    def __init__(self, username: str, avatar_id: str = None, team_name: str = ''):
        self.username = username
        self.avatar_id = avatar_id
        self.team_name = team_name
        self.level = 1
        self.xp = 0
        self.total_battles = 0
        self.total_wins = 0
        self.perfect_scores = 0
        self.best_score = 0
        self.current_streak = 0
        self.longest_streak = 0
        self.unlocked_achievements = []
        self.power_ups = {}
        self.created_at = utc_now_iso()

    @classmethod
    def create(cls, username: str, avatar_id: str = None, team_name: str = '') -> 'Profile':
        """Create a new profile at onboarding."""
        username = (username or '').strip()
        if not username:
            raise ProfileError("Username is required")
        return cls(username, avatar_id, (team_name or '').strip()[:TEAM_NAME_MAX_LENGTH])

    def to_dict(self) -> dict:
        return {
            'username': self.username,
            'avatarId': self.avatar_id,
            'teamName': self.team_name,
            'level': self.level,
            'xp': self.xp,
            'totalBattles': self.total_battles,
            'totalWins': self.total_wins,
            'perfectScores': self.perfect_scores,
            'bestScore': self.best_score,
            'currentStreak': self.current_streak,
            'longestStreak': self.longest_streak,
            'unlockedAchievements': list(self.unlocked_achievements),
            'powerUps': dict(self.power_ups),
            'createdAt': self.created_at
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'Profile':
        if not isinstance(data, dict) or not data.get('username'):
            raise ProfileError("Profile data must include a username")
        profile = cls(data['username'], data.get('avatarId'), data.get('teamName', '') or '')
        profile.xp = int(data.get('xp', 0))
        profile.total_battles = int(data.get('totalBattles', 0))
        profile.total_wins = int(data.get('totalWins', 0))
        profile.perfect_scores = int(data.get('perfectScores', 0))
        profile.best_score = data.get('bestScore', 0)
        profile.current_streak = int(data.get('currentStreak', 0))
        profile.longest_streak = max(int(data.get('longestStreak', 0)), profile.current_streak)
        profile.unlocked_achievements = list(data.get('unlockedAchievements', []))
        profile.power_ups = dict(data.get('powerUps', {}))
        profile.created_at = data.get('createdAt') or profile.created_at
        # Level is derived from xp, never trusted from stored data
        profile.level = level_for_xp(profile.xp)['level']
        return profile

    @property
    def level_info(self) -> dict:
        return level_for_xp(self.xp)

    @property
    def win_rate(self) -> int:
        """Win percentage, rounded half up. 0 before the first battle."""
        if self.total_battles == 0:
            return 0
        return int(round_half_up(self.total_wins / self.total_battles * 100))

    def apply_round_result(self, score: float) -> dict:
        """Award XP for a round score and update streak and win counters.

        The score is not clamped: an out-of-range score yields proportionally
        out-of-range XP.
        """
        base_xp = BASE_XP_PER_BATTLE
        score_xp = math.floor(score * XP_PER_SCORE_POINT)
        bonus_xp = 0
        is_perfect = score >= PERFECT_SCORE_THRESHOLD
        is_win = score >= WIN_SCORE_THRESHOLD

        if is_perfect:
            bonus_xp += PERFECT_SCORE_BONUS
            self.perfect_scores += 1

        if is_win:
            bonus_xp += WIN_BONUS
            self.total_wins += 1
            self.current_streak += 1
            if self.current_streak > self.longest_streak:
                self.longest_streak = self.current_streak
        else:
            self.current_streak = 0

        total_xp = base_xp + score_xp + bonus_xp
        self.xp += total_xp
        self.total_battles += 1
        if score > self.best_score:
            self.best_score = score

        old_level = self.level
        self.level = level_for_xp(self.xp)['level']

        return {
            'xp_earned': total_xp,
            'base_xp': base_xp,
            'score_xp': score_xp,
            'bonus_xp': bonus_xp,
            'is_win': is_win,
            'is_perfect': is_perfect,
            'level_changed': self.level != old_level,
            'new_level': self.level
        }

    def update(self, avatar_id: str = None, team_name: str = None) -> None:
        """Edit avatar and team name. None leaves a field unchanged."""
        if avatar_id is not None:
            self.avatar_id = avatar_id
        if team_name is not None:
            self.team_name = team_name.strip()[:TEAM_NAME_MAX_LENGTH]

    def recent_achievements(self, count: int = 3) -> list[str]:
        return self.unlocked_achievements[-count:] if count else []

    def leaderboard_entry(self) -> dict:
        return {
            'username': self.username,
            'avatarId': self.avatar_id,
            'teamName': self.team_name,
            'level': self.level,
            'xp': self.xp,
            'totalBattles': self.total_battles,
            'totalWins': self.total_wins,
            'perfectScores': self.perfect_scores,
            'bestScore': self.best_score,
            'lastUpdated': utc_now_iso()
        }
