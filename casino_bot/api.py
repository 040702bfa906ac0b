"""
FastAPI admin and reporting backend for the casino bot.
"""
import logging
import time
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from . import config
from .casino import CasinoService, GAME_NAMES
from .commands import COMMANDS
from .database import Database, Storage, User, GameRecord, Transaction, GameStats, UserGameStats, BotSettings, GameType
from .errors import CasinoError, ValidationError, InsufficientFundsError, PolicyError, NotFoundError
from .utils.formatting import format_win_rate

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ValidationError: 400,
    NotFoundError: 404,
    InsufficientFundsError: 409,
    PolicyError: 409,
}


# ===== MODELS =====

class CreateUserRequest(BaseModel):
    external_id: str
    username: Optional[str] = None


class AdjustBalanceRequest(BaseModel):
    amount: int
    description: str = "Admin adjustment"


class UserResponse(BaseModel):
    user_id: int
    external_id: str
    username: Optional[str]
    balance: int
    total_earned: int
    total_spent: int
    total_won: int
    highest_balance: int
    games_played: int
    games_won: int
    win_rate: str
    favorite_game: Optional[str] = None
    last_played: Optional[str] = None
    created_at: str


class TransactionResponse(BaseModel):
    tx_id: int
    amount: int
    type: str
    description: str
    balance_before: int
    balance_after: int
    game_id: Optional[int] = None
    timestamp: str


class GameStatsResponse(BaseModel):
    game_type: str
    name: str
    total_played: int
    total_wagered: int
    total_paid_out: int
    total_profit_loss: int
    highest_win: int
    highest_wager: int
    highest_multiplier: Optional[str] = None
    user_with_highest_win: Optional[int] = None
    user_with_highest_wager: Optional[int] = None


class UserGameStatsResponse(BaseModel):
    user_id: int
    game_type: str
    games_played: int
    games_won: int
    total_wagered: int
    total_won: int
    net_profit_loss: int
    highest_win: int
    highest_multiplier: Optional[str] = None
    win_rate: str
    favorite_game: bool


class PlayerStandingResponse(BaseModel):
    user_id: int
    username: Optional[str]
    games_played: int
    games_won: int
    total_wagered: int
    net_profit_loss: int
    highest_win: int
    win_rate: str


class GameRecordResponse(BaseModel):
    game_id: int
    game_type: str
    bet: int
    outcome: str
    win_amount: int
    multiplier: Optional[str] = None
    details: Dict[str, Any]
    played_at: str


class CommandResponse(BaseModel):
    name: str
    description: str
    usage: str
    category: str
    aliases: List[str]
    examples: List[str]
    enabled: bool


class RankedUserResponse(BaseModel):
    user_id: int
    username: Optional[str]
    value: int


class SettingsModel(BaseModel):
    prefix: str = "!"
    currency_name: str = "coins"
    currency_symbol: str = "$"
    starting_balance: int = 1000
    log_commands: bool = True
    allow_user_reset: bool = True
    cooldown_minutes: int = 5
    game_enabled: Dict[str, bool] = {}
    daily_reward_amount: int = 100
    streak_bonus_amount: int = 25
    max_streak_bonus: int = 250
    minimum_bet: int = 10
    maximum_bet: int = 10000
    allow_transfers: bool = True


# ===== CONVERSIONS =====

def parse_game_type(value: str) -> GameType:
    try:
        return GameType(value.lower())
    except ValueError:
        raise HTTPException(status_code=404, detail=f"Unknown game type: {value}")


def user_response(user: User, favorite: Optional[GameType] = None) -> UserResponse:
    return UserResponse(
        user_id=user.user_id,
        external_id=user.external_id,
        username=user.username,
        balance=user.balance,
        total_earned=user.total_earned,
        total_spent=user.total_spent,
        total_won=user.total_won,
        highest_balance=user.highest_balance,
        games_played=user.games_played,
        games_won=user.games_won,
        win_rate=format_win_rate(user.games_played, user.games_won),
        favorite_game=favorite.value if favorite else None,
        last_played=user.last_played.isoformat() if user.last_played else None,
        created_at=user.created_at.isoformat(),
    )


def transaction_response(tx: Transaction) -> TransactionResponse:
    return TransactionResponse(
        tx_id=tx.tx_id,
        amount=tx.amount,
        type=tx.tx_type.value,
        description=tx.description,
        balance_before=tx.balance_before,
        balance_after=tx.balance_after,
        game_id=tx.game_id,
        timestamp=tx.timestamp.isoformat(),
    )


def game_record_response(game: GameRecord) -> GameRecordResponse:
    return GameRecordResponse(
        game_id=game.game_id,
        game_type=game.game_type.value,
        bet=game.bet,
        outcome=game.outcome.value,
        win_amount=game.win_amount,
        multiplier=game.multiplier,
        details=game.details,
        played_at=game.played_at.isoformat(),
    )


def game_stats_response(stats: GameStats) -> GameStatsResponse:
    return GameStatsResponse(
        game_type=stats.game_type.value,
        name=GAME_NAMES[stats.game_type],
        total_played=stats.total_played,
        total_wagered=stats.total_wagered,
        total_paid_out=stats.total_paid_out,
        total_profit_loss=stats.total_profit_loss,
        highest_win=stats.highest_win,
        highest_wager=stats.highest_wager,
        highest_multiplier=stats.highest_multiplier,
        user_with_highest_win=stats.user_with_highest_win,
        user_with_highest_wager=stats.user_with_highest_wager,
    )


def user_game_stats_response(stats: UserGameStats) -> UserGameStatsResponse:
    return UserGameStatsResponse(
        user_id=stats.user_id,
        game_type=stats.game_type.value,
        games_played=stats.games_played,
        games_won=stats.games_won,
        total_wagered=stats.total_wagered,
        total_won=stats.total_won,
        net_profit_loss=stats.net_profit_loss,
        highest_win=stats.highest_win,
        highest_multiplier=stats.highest_multiplier,
        win_rate=stats.win_rate,
        favorite_game=stats.favorite_game,
    )


def settings_model(settings: BotSettings) -> SettingsModel:
    return SettingsModel(
        prefix=settings.prefix,
        currency_name=settings.currency_name,
        currency_symbol=settings.currency_symbol,
        starting_balance=settings.starting_balance,
        log_commands=settings.log_commands,
        allow_user_reset=settings.allow_user_reset,
        cooldown_minutes=settings.cooldown_minutes,
        game_enabled={g.value: settings.is_enabled(g) for g in GameType},
        daily_reward_amount=settings.daily_reward_amount,
        streak_bonus_amount=settings.streak_bonus_amount,
        max_streak_bonus=settings.max_streak_bonus,
        minimum_bet=settings.minimum_bet,
        maximum_bet=settings.maximum_bet,
        allow_transfers=settings.allow_transfers,
    )


def settings_from_model(model: SettingsModel, current: BotSettings) -> BotSettings:
    enabled = dict(current.game_enabled)
    for name, value in model.game_enabled.items():
        enabled[parse_game_type(name)] = value
    if model.minimum_bet <= 0 or model.maximum_bet < model.minimum_bet:
        raise ValidationError("minimum_bet", "Bet limits must satisfy 0 < minimum_bet <= maximum_bet")
    return BotSettings(
        prefix=model.prefix,
        currency_name=model.currency_name,
        currency_symbol=model.currency_symbol,
        starting_balance=model.starting_balance,
        log_commands=model.log_commands,
        allow_user_reset=model.allow_user_reset,
        cooldown_minutes=model.cooldown_minutes,
        game_enabled=enabled,
        daily_reward_amount=model.daily_reward_amount,
        streak_bonus_amount=model.streak_bonus_amount,
        max_streak_bonus=model.max_streak_bonus,
        minimum_bet=model.minimum_bet,
        maximum_bet=model.maximum_bet,
        allow_transfers=model.allow_transfers,
    )


def get_casino(request: Request) -> CasinoService:
    return request.app.state.casino


# ===== ROUTES =====

router = APIRouter(prefix="/api/bot")


@router.get("/status")
async def bot_status(request: Request):
    """Service status."""
    return {
        "status": "online",
        "uptime_seconds": int(time.time() - request.app.state.started_at),
    }


@router.get("/stats")
async def bot_stats(casino: CasinoService = Depends(get_casino)):
    """Headline numbers for the dashboard."""
    all_stats = casino.stats.get_all_game_stats()
    return {
        "total_users": len(casino.db.get_all_users()),
        "total_games": sum(s.total_played for s in all_stats),
        "total_wagered": sum(s.total_wagered for s in all_stats),
        "total_paid_out": sum(s.total_paid_out for s in all_stats),
        "house_profit": sum(s.total_profit_loss for s in all_stats),
        "pending_rounds": len(casino.pending_rounds),
    }


# === USER ENDPOINTS ===

@router.get("/users")
async def list_users(limit: int = 50, offset: int = 0, casino: CasinoService = Depends(get_casino)) -> List[UserResponse]:
    """List all users."""
    users = casino.db.get_all_users()[offset:offset + limit]
    return [user_response(u, casino.stats.get_favorite_game(u.user_id)) for u in users]


@router.get("/users/{user_id}")
async def get_user(user_id: int, casino: CasinoService = Depends(get_casino)) -> UserResponse:
    """Get one user."""
    user = casino.db.get_user(user_id)
    if not user:
        raise HTTPException(status_code=404, detail="User not found")
    return user_response(user, casino.stats.get_favorite_game(user_id))


@router.post("/users")
async def create_user(request: CreateUserRequest, casino: CasinoService = Depends(get_casino)) -> UserResponse:
    """Create a default account (or return the existing one)."""
    user = casino.get_or_create_user(request.external_id, request.username, casino.db.get_settings())
    return user_response(user)


@router.delete("/users/{user_id}")
async def delete_user(user_id: int, casino: CasinoService = Depends(get_casino)):
    """Delete a user's account data. Game history is kept."""
    casino.delete_user_data(user_id)
    logger.info(f"Admin deleted user {user_id}")
    return {"success": True}


@router.get("/users/{user_id}/transactions")
async def get_transactions(user_id: int, limit: int = 50, casino: CasinoService = Depends(get_casino)) -> List[TransactionResponse]:
    """Transaction history, newest first."""
    casino.get_user(user_id)
    return [transaction_response(tx) for tx in casino.ledger.get_history(user_id, limit)]


@router.get("/users/{user_id}/games")
async def get_user_games(user_id: int, limit: int = 10, casino: CasinoService = Depends(get_casino)) -> List[GameRecordResponse]:
    """Most recent games first."""
    casino.get_user(user_id)
    return [game_record_response(g) for g in casino.db.get_user_games(user_id, limit)]


@router.post("/users/{user_id}/balance")
async def adjust_balance(user_id: int, request: AdjustBalanceRequest, casino: CasinoService = Depends(get_casino)) -> TransactionResponse:
    """Credit (positive) or debit (negative) a user's balance."""
    tx = casino.ledger.adjust_balance(user_id, request.amount, request.description)
    logger.info(f"Admin adjusted user {user_id} balance by {request.amount}")
    return transaction_response(tx)


@router.get("/users/{user_id}/daily")
async def get_daily_status(user_id: int, casino: CasinoService = Depends(get_casino)):
    """Daily reward availability and streak."""
    casino.get_user(user_id)
    status = casino.rewards.get_status(user_id)
    return {
        "available": status.available,
        "streak": status.streak,
        "streak_active": status.streak_active,
        "last_claimed": status.last_claimed.isoformat() if status.last_claimed else None,
        "next_available": status.next_available.isoformat() if status.next_available else None,
        "seconds_remaining": int(status.time_remaining.total_seconds()),
    }


# === GAME ENDPOINTS ===

@router.get("/commands")
async def list_commands(casino: CasinoService = Depends(get_casino)) -> List[CommandResponse]:
    """Chat command catalog."""
    settings = casino.db.get_settings()
    return [
        CommandResponse(
            name=c.name,
            description=c.description,
            usage=c.usage,
            category=c.category,
            aliases=list(c.aliases),
            examples=list(c.examples),
            enabled=c.is_enabled(settings),
        )
        for c in COMMANDS
    ]


@router.get("/games")
async def list_games(casino: CasinoService = Depends(get_casino)):
    """Play and win counts per game."""
    return casino.games_summary()


# === SETTINGS ===

@router.get("/settings")
async def get_settings(casino: CasinoService = Depends(get_casino)) -> SettingsModel:
    return settings_model(casino.db.get_settings())


@router.post("/settings")
async def update_settings(request: SettingsModel, casino: CasinoService = Depends(get_casino)) -> SettingsModel:
    settings = settings_from_model(request, casino.db.get_settings())
    return settings_model(casino.db.update_settings(settings))


# === STATISTICS ===

@router.get("/statistics/games")
async def all_game_stats(casino: CasinoService = Depends(get_casino)) -> List[GameStatsResponse]:
    return [game_stats_response(s) for s in casino.stats.get_all_game_stats()]


@router.get("/statistics/games/{game_type}")
async def game_stats(game_type: str, casino: CasinoService = Depends(get_casino)) -> GameStatsResponse:
    return game_stats_response(casino.stats.get_game_stats(parse_game_type(game_type)))


@router.post("/statistics/rebuild")
async def rebuild_stats(casino: CasinoService = Depends(get_casino)):
    """Recompute aggregates from the game log."""
    casino.stats.rebuild()
    return {"success": True}


@router.get("/statistics/users/{user_id}")
async def user_stats(user_id: int, casino: CasinoService = Depends(get_casino)) -> List[UserGameStatsResponse]:
    casino.get_user(user_id)
    return [user_game_stats_response(s) for s in casino.stats.get_user_stats(user_id)]


@router.get("/statistics/users/{user_id}/{game_type}")
async def user_game_stats(user_id: int, game_type: str, casino: CasinoService = Depends(get_casino)) -> UserGameStatsResponse:
    stats = casino.stats.get_user_game_stats(user_id, parse_game_type(game_type))
    if not stats:
        raise HTTPException(status_code=404, detail="No statistics for this user and game")
    return user_game_stats_response(stats)


# === LEADERBOARDS ===

@router.get("/statistics/leaderboard/players")
async def leaderboard_players(limit: int = 10, casino: CasinoService = Depends(get_casino)) -> List[RankedUserResponse]:
    """Richest players."""
    return [
        RankedUserResponse(user_id=u.user_id, username=u.username, value=u.balance)
        for u in casino.stats.top_balances(limit)
    ]


@router.get("/statistics/leaderboard/earners")
async def leaderboard_earners(limit: int = 10, casino: CasinoService = Depends(get_casino)) -> List[RankedUserResponse]:
    return [
        RankedUserResponse(user_id=u.user_id, username=u.username, value=net)
        for u, net in casino.stats.top_earners(limit)
    ]


@router.get("/statistics/leaderboard/generous")
async def leaderboard_generous(limit: int = 10, casino: CasinoService = Depends(get_casino)) -> List[RankedUserResponse]:
    return [
        RankedUserResponse(user_id=u.user_id, username=u.username, value=sent)
        for u, sent in casino.stats.most_generous(limit)
    ]


@router.get("/statistics/leaderboard/games")
async def leaderboard_games(limit: int = 10, casino: CasinoService = Depends(get_casino)) -> List[GameStatsResponse]:
    return [game_stats_response(s) for s in casino.stats.top_games(limit)]


@router.get("/statistics/leaderboard/mostProfitable")
async def leaderboard_most_profitable(limit: int = 10, casino: CasinoService = Depends(get_casino)) -> List[GameStatsResponse]:
    return [game_stats_response(s) for s in casino.stats.most_profitable_games(limit)]


@router.get("/statistics/leaderboard/leastProfitable")
async def leaderboard_least_profitable(limit: int = 10, casino: CasinoService = Depends(get_casino)) -> List[GameStatsResponse]:
    return [game_stats_response(s) for s in casino.stats.least_profitable_games(limit)]


@router.get("/statistics/leaderboard/players/byGame")
async def leaderboard_players_by_game(
    game_type: Optional[str] = Query(None, alias="gameType"),
    sort_by: str = Query("net_profit_loss", alias="sortBy"),
    limit: int = 10,
    casino: CasinoService = Depends(get_casino),
) -> List[PlayerStandingResponse]:
    """Player ranking within one game (or all games when gameType is omitted)."""
    parsed = parse_game_type(game_type) if game_type else None
    standings = casino.stats.player_leaderboard(parsed, sort_by, limit)
    return [PlayerStandingResponse(**vars(s)) for s in standings]


# ===== APP =====

async def casino_error_handler(request: Request, exc: CasinoError):
    status_code = ERROR_STATUS.get(type(exc), 400)
    logger.warning(f"{request.method} {request.url.path} rejected: {exc.message}")
    return JSONResponse(status_code=status_code, content={"detail": exc.message})


def create_app(db: Optional[Storage] = None, casino: Optional[CasinoService] = None) -> FastAPI:
    """Build the API around a storage backend (a fresh in-memory one by default)."""
    app = FastAPI(title="Casino Bot Admin API", version="1.0.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["GET", "POST", "DELETE"],
        allow_headers=["*"],
    )
    app.state.casino = casino or CasinoService(db or Database(config.load_settings()))
    app.state.started_at = time.time()
    app.add_exception_handler(CasinoError, casino_error_handler)
    app.include_router(router)

    @app.get("/health")
    async def health_check():
        return {"status": "healthy"}

    return app

