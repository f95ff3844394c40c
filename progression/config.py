"""Configuration management"""
import os
from dotenv import load_dotenv

from progression.exceptions import ConfigurationError

load_dotenv()

# Storage
# - 'memory' (default): in-process store, state is lost on restart
# - 'redis': one JSON record per key in Redis
STORE_BACKEND: str = os.getenv("STORE_BACKEND", "memory").lower()
REDIS_URL: str = os.getenv("REDIS_URL", "redis://localhost:6379/0")
REDIS_KEY_PREFIX: str = os.getenv("REDIS_KEY_PREFIX", "")

# Logging
LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO").upper()

# Calendar days (daily quests, streak history, power-up daily limits) are keyed in this zone
TIMEZONE: str = os.getenv("TIMEZONE", "UTC")

# Streaks
STREAK_MILESTONE_DAYS_RAW: str = os.getenv("STREAK_MILESTONE_DAYS", "3,7,14,30")
# Consecutive missed days tolerated before the streak resets (0 = strict)
STREAK_GRACE_DAYS: int = int(os.getenv("STREAK_GRACE_DAYS", "0"))

# Quests
DAILY_STUDY_GOAL_MINUTES: int = int(os.getenv("DAILY_STUDY_GOAL_MINUTES", "30"))
# Days a finished daily/weekly quest is kept before refresh_quests drops it
QUEST_RETENTION_DAYS: int = int(os.getenv("QUEST_RETENTION_DAYS", "14"))


def parse_milestone_days(raw: str) -> list[int]:
    """Parse a comma separated list of streak milestone thresholds"""
    try:
        days = sorted({int(part) for part in raw.split(",") if part.strip()})
    except ValueError as e:
        raise ConfigurationError(
            f"STREAK_MILESTONE_DAYS must be comma separated integers, got {raw!r}",
            config_key="STREAK_MILESTONE_DAYS",
            cause=e
        )
    if any(d <= 0 for d in days):
        raise ConfigurationError(
            "STREAK_MILESTONE_DAYS must only contain positive values",
            config_key="STREAK_MILESTONE_DAYS"
        )
    return days


STREAK_MILESTONE_DAYS: list[int] = parse_milestone_days(STREAK_MILESTONE_DAYS_RAW)


# Validation
def validate_config() -> None:
    """Validate configuration values"""
    from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

    if STORE_BACKEND not in ("memory", "redis"):
        raise ConfigurationError(
            f"STORE_BACKEND must be 'memory' or 'redis', got {STORE_BACKEND!r}",
            config_key="STORE_BACKEND"
        )
    if STORE_BACKEND == "redis" and not REDIS_URL:
        raise ConfigurationError("REDIS_URL is required for the redis backend", config_key="REDIS_URL")
    if STREAK_GRACE_DAYS < 0:
        raise ConfigurationError("STREAK_GRACE_DAYS must not be negative", config_key="STREAK_GRACE_DAYS")
    if DAILY_STUDY_GOAL_MINUTES <= 0:
        raise ConfigurationError(
            "DAILY_STUDY_GOAL_MINUTES must be positive",
            config_key="DAILY_STUDY_GOAL_MINUTES"
        )
    if QUEST_RETENTION_DAYS < 1:
        raise ConfigurationError("QUEST_RETENTION_DAYS must be at least 1", config_key="QUEST_RETENTION_DAYS")
    try:
        ZoneInfo(TIMEZONE)
    except (ZoneInfoNotFoundError, ValueError) as e:
        raise ConfigurationError(f"Unknown TIMEZONE {TIMEZONE!r}", config_key="TIMEZONE", cause=e)
