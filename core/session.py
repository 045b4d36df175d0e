"""Round phase state machine.

A round moves Scenario -> Crafting -> Evaluation -> Results, or to
Cancelled from any phase. Time only advances through tick(), so a driver
(an asyncio task, a console loop, a test) decides what a second is.
"""

import time
from enum import Enum

from .config import (
    SCENARIO_COUNTDOWN, PROMPT_TIME_LIMIT,
    TIMER_WARNING_THRESHOLD, TIMER_DANGER_THRESHOLD,
    MIN_PROMPT_LENGTH, MAX_PROMPT_LENGTH
)
from .models import Scenario


class Phase(str, Enum):
    SCENARIO = 'scenario'
    CRAFTING = 'crafting'
    EVALUATION = 'evaluation'
    RESULTS = 'results'
    CANCELLED = 'cancelled'


class PromptValidationError(ValueError):
    """Submitted prompt is too short or too long."""


class PhaseError(RuntimeError):
    """Operation not allowed in the round's current phase."""


def validate_prompt(prompt: str | None) -> str:
    """Check prompt length limits. Returns the prompt unchanged."""
    if not prompt or len(prompt.strip()) < MIN_PROMPT_LENGTH:
        raise PromptValidationError(f"Please write a prompt (at least {MIN_PROMPT_LENGTH} characters)")
    if len(prompt) > MAX_PROMPT_LENGTH:
        raise PromptValidationError(f"Prompt is too long (max {MAX_PROMPT_LENGTH} characters)")
    return prompt


class BattleSession:
    """Timers and phase for a single round."""

    def __init__(self, scenario: Scenario, scenario_countdown: int = SCENARIO_COUNTDOWN,
                 time_limit: int = PROMPT_TIME_LIMIT, clock=time.monotonic):
        self.scenario = scenario
        self.phase = Phase.SCENARIO
        self.countdown = scenario_countdown
        self.time_limit = time_limit
        self.time_remaining = time_limit
        self.timed_out = False
        self.draft = ''
        self.submitted_prompt = None
        self.results = None
        self._clock = clock
        self.started_at = clock()

    @property
    def is_active(self) -> bool:
        """True while timers still run (scenario or crafting)."""
        return self.phase in (Phase.SCENARIO, Phase.CRAFTING) and not self.timed_out

    def tick(self) -> bool:
        """Advance timers by one second.

        Returns True exactly once, on the tick where the crafting timer runs
        out; the caller then submits the draft through the normal path.
        """
        if self.phase == Phase.SCENARIO:
            self.countdown -= 1
            if self.countdown <= 0:
                self.start_crafting()
            return False

        if self.phase == Phase.CRAFTING and not self.timed_out:
            self.time_remaining -= 1
            if self.time_remaining <= 0:
                self.time_remaining = 0
                self.timed_out = True
                return True
        return False

    def start_crafting(self) -> None:
        if self.phase != Phase.SCENARIO:
            raise PhaseError(f"Cannot start crafting from phase '{self.phase.value}'")
        self.countdown = 0
        self.phase = Phase.CRAFTING
        self.time_remaining = self.time_limit

    def update_draft(self, text: str) -> None:
        if self.phase not in (Phase.SCENARIO, Phase.CRAFTING):
            raise PhaseError("Submission is closed for this round")
        self.draft = text or ''

    def timer_state(self) -> str:
        if self.phase != Phase.CRAFTING:
            return 'normal'
        if self.time_remaining <= TIMER_DANGER_THRESHOLD:
            return 'danger'
        if self.time_remaining <= TIMER_WARNING_THRESHOLD:
            return 'warning'
        return 'normal'

    def begin_evaluation(self, prompt: str = None) -> str:
        """Close submission and enter the evaluation phase.

        Uses the current draft when no prompt is given. An invalid prompt
        raises PromptValidationError and leaves the round untouched.
        """
        if self.phase != Phase.CRAFTING:
            raise PhaseError(f"Cannot submit in phase '{self.phase.value}'")
        prompt = validate_prompt(self.draft if prompt is None else prompt)
        self.draft = prompt
        self.submitted_prompt = prompt
        self.phase = Phase.EVALUATION
        return prompt

    def complete(self, results: dict) -> None:
        if self.phase != Phase.EVALUATION:
            raise PhaseError(f"Cannot complete from phase '{self.phase.value}'")
        self.results = results
        self.phase = Phase.RESULTS

    def cancel(self) -> None:
        self.phase = Phase.CANCELLED

    def elapsed_seconds(self) -> int:
        return int(self._clock() - self.started_at)

    def to_dict(self) -> dict:
        return {
            'phase': self.phase.value,
            'scenario': self.scenario.to_dict(),
            'countdown': self.countdown,
            'time_remaining': self.time_remaining,
            'timer_state': self.timer_state(),
            'timed_out': self.timed_out,
            'draft': self.draft,
            'elapsed': self.elapsed_seconds(),
            'results': self.results
        }
