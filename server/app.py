"""FastAPI server for prompt battle application."""

import asyncio
import json
import logging
import os
from pathlib import Path

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel
from typing import Optional

logger = logging.getLogger(__name__)

from core.coach import PromptCoach
from core.config import load_config, GEMINI_MODEL, DEFAULT_MODEL, API_BASE_URL, RECENT_HISTORY_COUNT
from core.game import SessionContext
from core.interfaces import AIProvider, Storage
from core.models import ProfileError
from core.scenarios import get_all_scenarios, get_scenario, get_avatar, AVATARS, random_tip
from core.session import PhaseError, PromptValidationError
from core.utils import estimate_tokens

from server.chat_provider import ChatCompletionProvider
from server.gemini_provider import GeminiProvider
from server.file_storage import FileStorage
from server.postgres_storage import PostgresStorage

# Paths
PROJECT_ROOT = Path(__file__).parent.parent
SHARED_LEADERBOARD_FILE = PROJECT_ROOT / "data" / "shared-leaderboard.json"

# Seconds per timer tick
TICK_SECONDS = 1.0


# Pydantic models for API
class CreateProfileRequest(BaseModel):
    username: str
    avatar_id: Optional[str] = None
    team_name: str = ""
    user_id: str = "default"


class UpdateProfileRequest(BaseModel):
    avatar_id: Optional[str] = None
    team_name: Optional[str] = None
    user_id: str = "default"


class StartBattleRequest(BaseModel):
    scenario_id: Optional[str] = None
    user_id: str = "default"


class UserRequest(BaseModel):
    user_id: str = "default"


class DraftRequest(BaseModel):
    text: str
    user_id: str = "default"


class SubmitRequest(BaseModel):
    prompt: Optional[str] = None
    user_id: str = "default"


class AnalyzeRequest(BaseModel):
    prompt: str
    user_id: str = "default"


class SyncRequest(BaseModel):
    shared: Optional[dict] = None
    user_id: str = "default"


class ImportRequest(BaseModel):
    data: dict
    user_id: str = "default"


class ReviewRequest(BaseModel):
    prompt: str
    context: str = ""
    user_id: str = "default"


class SaveReviewRequest(BaseModel):
    prompt: str
    context: str = ""
    score: Optional[float] = None
    user_id: str = "default"


class ProfileResponse(BaseModel):
    profile: dict
    level: dict
    win_rate: int
    recent_battles: list
    recent_achievements: list[str]


class RoundResultResponse(BaseModel):
    score: float
    evaluation: dict
    ai_output: str
    xp_earned: int
    progress: dict
    level: dict
    used_fallback: bool
    battle: dict
    persisted: bool


# Global state (in production, use proper DI)
storage: Storage = None
ai_provider: AIProvider | None = None
coach: PromptCoach = None
sessions: dict[str, SessionContext] = {}

# One timer task per player with a round in flight
timer_tasks: dict[str, asyncio.Task] = {}


app = FastAPI(title="Prompt Battle API", description="Timed prompt engineering battles")


def get_context(user_id: str = "default") -> SessionContext:
    """Get or load the session context for a player."""
    if user_id not in sessions:
        sessions[user_id] = SessionContext(storage, coach, user_id)
    return sessions[user_id]


def require_profile(ctx: SessionContext):
    if ctx.profile is None:
        raise HTTPException(status_code=404, detail="No profile for this user")
    return ctx.profile


def require_battle(ctx: SessionContext):
    if ctx.battle is None:
        raise HTTPException(status_code=404, detail="No active battle")
    return ctx.battle


def stop_timer(user_id: str) -> None:
    """Cancel a player's timer task, unless it is the caller."""
    task = timer_tasks.pop(user_id, None)
    if task is not None and task is not asyncio.current_task() and not task.done():
        task.cancel()


async def submit_round(ctx: SessionContext, prompt: str = None) -> dict:
    """Shared submit path for manual submits and timer expiry.

    Closing submission happens before the first await, so a second submit
    arriving while the first is evaluating gets a PhaseError.
    """
    ctx.begin_submit(prompt)
    stop_timer(ctx.user_id)
    loop = asyncio.get_event_loop()
    return await loop.run_in_executor(None, ctx.finish_submit)


async def run_battle_timer(user_id: str) -> None:
    """Tick the player's round once per second until it leaves the timed phases."""
    ctx = get_context(user_id)
    battle = ctx.battle
    try:
        while battle is ctx.battle and battle.is_active:
            await asyncio.sleep(TICK_SECONDS)
            if battle is not ctx.battle:
                break
            if battle.tick():
                logger.info(f"Time's up for {user_id}, submitting draft")
                try:
                    await submit_round(ctx)
                except PromptValidationError as e:
                    logger.warning(f"Auto-submit for {user_id} rejected: {e}")
                except PhaseError:
                    # Manual submit won the race
                    pass
                break
    finally:
        if timer_tasks.get(user_id) is asyncio.current_task():
            del timer_tasks[user_id]


def create_storage() -> Storage:
    # File storage by default, set PROMPT_BATTLE_STORAGE=postgres for PostgreSQL
    storage_type = os.environ.get('PROMPT_BATTLE_STORAGE', 'file')
    if storage_type == 'postgres':
        logger.info("Using PostgreSQL storage")
        return PostgresStorage()
    logger.info("Using file storage")
    return FileStorage()


def create_provider(config: dict) -> AIProvider | None:
    """Build the evaluator provider from env vars, then the config file.

    Returns None when no API key is available; every evaluation then uses
    the heuristic scorer.
    """
    provider_type = os.environ.get('PROMPT_BATTLE_PROVIDER', config.get('provider', 'openai'))
    if provider_type == 'gemini':
        api_key = os.environ.get('GEMINI_API_KEY') or config.get('gemini_api_key')
        if not api_key:
            logger.warning("GEMINI_API_KEY not set; evaluations will use the offline scorer")
            return None
        model = config.get('model', GEMINI_MODEL)
        logger.info(f"AI provider initialized: {model} (gemini)")
        return GeminiProvider(api_key, model_name=model)

    api_key = os.environ.get('OPENAI_API_KEY') or config.get('openai_api_key')
    if not api_key:
        logger.warning("OPENAI_API_KEY not set; evaluations will use the offline scorer")
        return None
    base_url = os.environ.get('OPENAI_BASE_URL') or config.get('base_url', API_BASE_URL)
    model = config.get('model', DEFAULT_MODEL)
    logger.info(f"AI provider initialized: {model} ({base_url})")
    return ChatCompletionProvider(api_key, base_url=base_url, model=model)


@app.on_event("startup")
async def startup():
    """Initialize storage and AI provider on startup."""
    global storage, ai_provider, coach

    try:
        config = load_config()
    except FileNotFoundError:
        config = {}

    storage = create_storage()
    ai_provider = create_provider(config)
    coach = PromptCoach(ai_provider)


@app.on_event("shutdown")
async def shutdown():
    for user_id in list(timer_tasks):
        stop_timer(user_id)


@app.get("/")
async def root():
    """Service info."""
    return {
        "name": "Prompt Battle API",
        "provider": getattr(ai_provider, 'model_name', None),
        "storage": type(storage).__name__ if storage else None
    }


# Profile Endpoints
@app.get("/api/profile", response_model=ProfileResponse)
async def get_profile(user_id: str = "default"):
    """Get the player's profile, level progress and recent battles."""
    ctx = get_context(user_id)
    profile = require_profile(ctx)
    return ProfileResponse(
        profile=profile.to_dict(),
        level=profile.level_info,
        win_rate=profile.win_rate,
        recent_battles=[r.to_dict() for r in ctx.history.recent(RECENT_HISTORY_COUNT)],
        recent_achievements=profile.recent_achievements()
    )


@app.post("/api/profile")
async def create_profile(request: CreateProfileRequest):
    """Create a profile at onboarding."""
    ctx = get_context(request.user_id)
    if ctx.profile is not None:
        raise HTTPException(status_code=409, detail="Profile already exists")
    if request.avatar_id is not None and get_avatar(request.avatar_id) is None:
        raise HTTPException(status_code=400, detail=f"Unknown avatar: {request.avatar_id}")
    try:
        profile = ctx.create_profile(request.username, request.avatar_id, request.team_name)
    except ProfileError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return {"profile": profile.to_dict(), "level": profile.level_info}


@app.patch("/api/profile")
async def update_profile(request: UpdateProfileRequest):
    """Edit avatar and team name."""
    ctx = get_context(request.user_id)
    require_profile(ctx)
    if request.avatar_id is not None and get_avatar(request.avatar_id) is None:
        raise HTTPException(status_code=400, detail=f"Unknown avatar: {request.avatar_id}")
    profile = ctx.update_profile(request.avatar_id, request.team_name)
    return {"profile": profile.to_dict()}


@app.delete("/api/profile")
async def clear_profile(user_id: str = "default"):
    """Clear all of a player's data."""
    ctx = get_context(user_id)
    stop_timer(user_id)
    cleared = ctx.clear_data()
    sessions.pop(user_id, None)
    return {"cleared": cleared}


@app.get("/api/avatars")
async def list_avatars():
    return {"avatars": AVATARS}


# Battle Endpoints
@app.get("/api/scenarios")
async def list_scenarios():
    """List the scenario catalog."""
    return {"scenarios": [s.to_dict() for s in get_all_scenarios()]}


@app.post("/api/battle/start")
async def start_battle(request: StartBattleRequest):
    """Start a round and its timer."""
    ctx = get_context(request.user_id)
    require_profile(ctx)
    scenario = None
    if request.scenario_id:
        scenario = get_scenario(request.scenario_id)
        if scenario is None:
            raise HTTPException(status_code=404, detail=f"Unknown scenario: {request.scenario_id}")

    stop_timer(request.user_id)
    battle = ctx.start_battle(scenario)
    timer_tasks[request.user_id] = asyncio.create_task(run_battle_timer(request.user_id))
    return battle.to_dict()


@app.get("/api/battle")
async def get_battle(user_id: str = "default"):
    """Current round state: phase, timers, draft and results."""
    ctx = get_context(user_id)
    return require_battle(ctx).to_dict()


@app.post("/api/battle/ready")
async def battle_ready(request: UserRequest):
    """Skip the rest of the scenario countdown."""
    ctx = get_context(request.user_id)
    battle = require_battle(ctx)
    try:
        battle.start_crafting()
    except PhaseError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return battle.to_dict()


@app.post("/api/battle/draft")
async def update_draft(request: DraftRequest):
    """Save the in-progress prompt; it is submitted if time runs out."""
    ctx = get_context(request.user_id)
    battle = require_battle(ctx)
    try:
        battle.update_draft(request.text)
    except PhaseError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return {
        "length": len(battle.draft),
        "tokens": estimate_tokens(battle.draft),
        "time_remaining": battle.time_remaining
    }


@app.post("/api/battle/analyze")
async def analyze_prompt(request: AnalyzeRequest):
    """Quick structural feedback on a draft."""
    ctx = get_context(request.user_id)
    loop = asyncio.get_event_loop()
    result = await loop.run_in_executor(None, ctx.coach.analyze_prompt, request.prompt)
    if not result.get('success'):
        return {"success": False, "error": result.get('error')}
    return {"success": True, "feedback": result.get('content')}


@app.post("/api/battle/submit", response_model=RoundResultResponse)
async def submit_prompt(request: SubmitRequest):
    """Submit the prompt (or the saved draft) for evaluation."""
    ctx = get_context(request.user_id)
    require_battle(ctx)
    require_profile(ctx)
    try:
        results = await submit_round(ctx, request.prompt)
    except PromptValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except PhaseError as e:
        raise HTTPException(status_code=409, detail=str(e))
    except Exception as e:
        logger.error(f"Error in submit_prompt: {type(e).__name__}: {e}")
        import traceback
        logger.error(traceback.format_exc())
        raise HTTPException(status_code=500, detail=f"Internal error: {type(e).__name__}: {str(e)}")
    return RoundResultResponse(**results)


@app.delete("/api/battle")
async def cancel_battle(user_id: str = "default"):
    """Leave the round; its timer stops."""
    ctx = get_context(user_id)
    stop_timer(user_id)
    ctx.cancel_battle()
    return {"cancelled": True}


# History Endpoints
@app.get("/api/history")
async def get_history(user_id: str = "default", limit: int = RECENT_HISTORY_COUNT):
    """Most recent battles, newest first."""
    ctx = get_context(user_id)
    return {
        "total": len(ctx.history),
        "battles": [r.to_dict() for r in ctx.history.recent(limit)]
    }


@app.get("/api/history/{battle_id}")
async def get_battle_record(battle_id: str, user_id: str = "default"):
    ctx = get_context(user_id)
    record = ctx.history.find(battle_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Battle not found")
    return record.to_dict()


# Leaderboard Endpoints
@app.get("/api/leaderboard")
async def get_leaderboard(user_id: str = "default"):
    ctx = get_context(user_id)
    rank = ctx.leaderboard.rank_of(ctx.profile.username) if ctx.profile else None
    return {**ctx.leaderboard.to_dict(), "rank": rank}


def load_shared_leaderboard() -> dict | None:
    if not SHARED_LEADERBOARD_FILE.exists():
        return None
    try:
        with open(SHARED_LEADERBOARD_FILE, 'r') as f:
            return json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        logger.warning(f"Could not read shared leaderboard: {e}")
        return None


@app.post("/api/leaderboard/sync")
async def sync_leaderboard(request: SyncRequest):
    """Merge this player into a shared snapshot (request body or shared file)."""
    ctx = get_context(request.user_id)
    require_profile(ctx)
    shared = request.shared if request.shared is not None else load_shared_leaderboard()
    board = ctx.sync_leaderboard(shared)
    return {**board.to_dict(), "rank": board.rank_of(ctx.profile.username)}


# Data Endpoints
@app.get("/api/export")
async def export_data(user_id: str = "default"):
    ctx = get_context(user_id)
    require_profile(ctx)
    return ctx.export_data()


@app.post("/api/import")
async def import_data(request: ImportRequest):
    ctx = get_context(request.user_id)
    try:
        profile = ctx.import_data(request.data)
    except (ProfileError, TypeError, ValueError) as e:
        raise HTTPException(status_code=400, detail=f"Invalid import data: {e}")
    return {"profile": profile.to_dict()}


# Playground Endpoints
@app.post("/api/playground/review")
async def review_prompt(request: ReviewRequest):
    """Detailed coaching review of a prompt, outside of battles."""
    if not request.prompt.strip():
        raise HTTPException(status_code=400, detail="Please enter a prompt to review")
    ctx = get_context(request.user_id)
    loop = asyncio.get_event_loop()
    review = await loop.run_in_executor(None, ctx.review_prompt, request.prompt, request.context)
    if review is None:
        raise HTTPException(status_code=502, detail="Review unavailable, please try again")
    return review


@app.post("/api/playground/save")
async def save_review(request: SaveReviewRequest):
    if not request.prompt.strip():
        raise HTTPException(status_code=400, detail="Nothing to save")
    ctx = get_context(request.user_id)
    record = ctx.save_review(request.prompt, request.context, request.score)
    return record.to_dict()


@app.get("/api/playground/history")
async def get_playground_history(user_id: str = "default"):
    ctx = get_context(user_id)
    return {"reviews": ctx.reviews.to_list()}


# Misc Endpoints
@app.get("/api/tip")
async def get_tip():
    return {"tip": random_tip()}


@app.get("/api/users")
async def list_users():
    """List all players with stored data."""
    return {"users": storage.list_users()}


@app.get("/api/stats")
async def get_api_stats():
    """AI provider usage statistics."""
    if ai_provider is None:
        return {"provider": None}
    return {"provider": ai_provider.model_name, "total": ai_provider.get_stats()}


def create_app():
    """Factory function for creating the app (useful for testing)."""
    return app
