"""Per-player session context: profile, history and the round in flight."""

import logging
import time

from .coach import PromptCoach
from .config import (
    STORAGE_PROFILE, STORAGE_BATTLE_HISTORY, STORAGE_LEADERBOARD,
    STORAGE_PLAYGROUND_HISTORY, EXPORT_VERSION, SCENARIO_COUNTDOWN, PROMPT_TIME_LIMIT
)
from .interfaces import Storage
from .leaderboard import Leaderboard
from .models import BattleHistory, BattleRecord, Profile, ProfileError, ReviewHistory, ReviewRecord, Scenario
from .scenarios import random_scenario
from .session import BattleSession, Phase, PhaseError
from .utils import utc_now_iso

logger = logging.getLogger(__name__)

AI_OUTPUT_UNAVAILABLE = 'AI response unavailable'


class SessionContext:
    """Everything one player's session needs, loaded from and saved to Storage.

    In-memory state stays authoritative for the session; a failed write is
    logged and reported, never raised.
    """

    def __init__(self, storage: Storage, coach: PromptCoach, user_id: str = "default",
                 scenario_countdown: int = SCENARIO_COUNTDOWN, time_limit: int = PROMPT_TIME_LIMIT,
                 clock=time.monotonic):
        self.storage = storage
        self.coach = coach
        self.user_id = user_id
        self.scenario_countdown = scenario_countdown
        self.time_limit = time_limit
        self.clock = clock
        self.battle: BattleSession | None = None
        self.profile = self._load_profile()
        self.history = BattleHistory.from_list(storage.get(STORAGE_BATTLE_HISTORY, [], user_id))
        self.reviews = ReviewHistory.from_list(storage.get(STORAGE_PLAYGROUND_HISTORY, [], user_id))
        self.leaderboard = Leaderboard.from_dict(storage.get(STORAGE_LEADERBOARD, None, user_id))

    def _load_profile(self) -> Profile | None:
        data = self.storage.get(STORAGE_PROFILE, None, self.user_id)
        if data is None:
            return None
        try:
            return Profile.from_dict(data)
        except (ProfileError, TypeError, ValueError) as e:
            logger.warning(f"Ignoring unreadable profile for {self.user_id}: {e}")
            return None

    def _save(self, key: str, value) -> bool:
        ok = self.storage.set(key, value, self.user_id)
        if not ok:
            logger.warning(f"Could not persist '{key}' for {self.user_id}; keeping session-only state")
        return ok

    def save_profile(self) -> bool:
        if self.profile is None:
            return False
        return self._save(STORAGE_PROFILE, self.profile.to_dict())

    def _require_profile(self) -> Profile:
        if self.profile is None:
            raise ProfileError("No profile; create one first")
        return self.profile

    # Profile

    def create_profile(self, username: str, avatar_id: str = None, team_name: str = '') -> Profile:
        self.profile = Profile.create(username, avatar_id, team_name)
        self.save_profile()
        logger.info(f"Created profile '{self.profile.username}' for {self.user_id}")
        return self.profile

    def update_profile(self, avatar_id: str = None, team_name: str = None) -> Profile:
        profile = self._require_profile()
        profile.update(avatar_id, team_name)
        self.save_profile()
        return profile

    # Rounds

    def start_battle(self, scenario: Scenario = None) -> BattleSession:
        """Start a new round, cancelling any round still in flight."""
        self._require_profile()
        if self.battle is not None and self.battle.is_active:
            self.battle.cancel()
        if scenario is None:
            last_id = self.history.records[0].scenario_id if len(self.history) else None
            scenario = random_scenario(exclude_id=last_id)
        self.battle = BattleSession(scenario, self.scenario_countdown, self.time_limit, self.clock)
        logger.info(f"Battle started for {self.user_id}: {scenario.title}")
        return self.battle

    def cancel_battle(self) -> None:
        if self.battle is not None:
            self.battle.cancel()
            self.battle = None

    def begin_submit(self, prompt: str = None) -> str:
        """Close submission for the current round. Raises PhaseError if none is open."""
        if self.battle is None:
            raise PhaseError("No active battle")
        return self.battle.begin_evaluation(prompt)

    def finish_submit(self) -> dict:
        """Evaluate and execute the submitted prompt, then record the round.

        Blocking: both provider calls run here, one after the other. If
        anything fails the round is cancelled rather than left evaluating.
        """
        battle = self.battle
        if battle is None:
            raise PhaseError("No active battle")
        profile = self._require_profile()
        try:
            results = self._score_round(battle, profile)
        except Exception:
            logger.exception(f"Scoring failed for {self.user_id}, cancelling round")
            if battle.phase == Phase.EVALUATION:
                battle.cancel()
            raise
        # A round cancelled mid-evaluation still counts, but has no results view
        if battle.phase == Phase.EVALUATION:
            battle.complete(results)
        return results

    def _score_round(self, battle: BattleSession, profile: Profile) -> dict:
        prompt = battle.submitted_prompt
        scenario = battle.scenario

        evaluation = self.coach.evaluate_prompt(prompt, scenario)
        execution = self.coach.execute_prompt(prompt, scenario.data)
        ai_output = execution.get('content') if execution.get('success') else None
        if ai_output is None:
            logger.warning(f"Prompt execution failed: {execution.get('error')}")

        score = evaluation.display_score
        progress = profile.apply_round_result(score)
        record = BattleRecord.create(scenario, prompt, score, progress['xp_earned'], battle.elapsed_seconds())
        self.history.append(record)

        persisted = self.save_profile()
        persisted = self._save(STORAGE_BATTLE_HISTORY, self.history.to_list()) and persisted

        if progress['level_changed']:
            logger.info(f"{profile.username} reached level {progress['new_level']}")

        return {
            'score': score,
            'evaluation': evaluation.to_dict(),
            'ai_output': ai_output or AI_OUTPUT_UNAVAILABLE,
            'xp_earned': progress['xp_earned'],
            'progress': progress,
            'level': profile.level_info,
            'used_fallback': evaluation.is_fallback,
            'battle': record.to_dict(),
            'persisted': persisted
        }

    def submit_prompt(self, prompt: str = None) -> dict:
        """Submit the round's prompt (or its draft) and return the results."""
        self.begin_submit(prompt)
        return self.finish_submit()

    # Playground

    def review_prompt(self, prompt: str, context: str = '') -> dict | None:
        return self.coach.review_prompt(prompt, context)

    def save_review(self, prompt: str, context: str = '', score: float = None) -> ReviewRecord:
        record = ReviewRecord.create(prompt, context, score)
        self.reviews.append(record)
        self._save(STORAGE_PLAYGROUND_HISTORY, self.reviews.to_list())
        return record

    # Leaderboard and data management

    def sync_leaderboard(self, shared: dict = None) -> Leaderboard:
        """Merge this player's entry into a shared snapshot and keep it locally."""
        profile = self._require_profile()
        board = Leaderboard.from_dict(shared) if shared is not None else self.leaderboard
        board.upsert(profile.leaderboard_entry())
        self.leaderboard = board
        self._save(STORAGE_LEADERBOARD, board.to_dict())
        return board

    def export_data(self) -> dict:
        return {
            'profile': self.profile.to_dict() if self.profile else None,
            'history': self.history.to_list(),
            'exportedAt': utc_now_iso(),
            'version': EXPORT_VERSION
        }

    def import_data(self, data: dict) -> Profile:
        """Replace profile (and history, when present) from an export."""
        if not isinstance(data, dict) or not data.get('profile'):
            raise ProfileError("Import data must include a profile")
        self.profile = Profile.from_dict(data['profile'])
        self.save_profile()
        if 'history' in data:
            self.history = BattleHistory.from_list(data.get('history'))
            self._save(STORAGE_BATTLE_HISTORY, self.history.to_list())
        logger.info(f"Imported profile '{self.profile.username}' for {self.user_id}")
        return self.profile

    def clear_data(self) -> bool:
        self.cancel_battle()
        self.profile = None
        self.history = BattleHistory()
        self.reviews = ReviewHistory()
        self.leaderboard = Leaderboard()
        return self.storage.clear(self.user_id)
