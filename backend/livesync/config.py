"""
Live-sync configuration.
Uses PL_LIVESYNC_ prefix; Redis/DB come from shared get_settings().
All matching windows and thresholds are empirically chosen and tunable here.
"""
from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from livesync.models import SportType


class LiveSyncSettings(BaseSettings):
    """Reconciliation thresholds, windows and loop settings."""

    model_config = SettingsConfigDict(
        env_prefix="PL_LIVESYNC_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    sport: SportType = Field(default=SportType.FOOTBALL, description="Only games of this sport are reconciled")

    # Team matching
    team_match_floor: float = Field(default=0.3, description="Below this a team match is treated as garbage")
    strict_team_score: float = Field(default=0.9, description="Min team score for live-pool and scored-pool matching")
    team_name_cache_size: int = Field(default=5000, description="Normalized team names kept in memory")

    # External-id re-verification
    external_id_high_window_minutes: float = Field(default=60.0, description="Kickoff distance for HIGH on id match")
    external_id_max_days: float = Field(default=7.0, description="Beyond this the stored id is a stale binding")

    # Scored-pool tiers
    medium_window_minutes: float = Field(default=30.0)
    medium_competition_score: float = Field(default=0.7)
    low_window_minutes: float = Field(default=120.0)
    low_competition_score_near: float = Field(default=0.6, description="LOW bar when within medium window")
    low_competition_score_far: float = Field(default=0.9, description="LOW bar when within low window")

    # Decision gates
    low_max_date_diff_minutes: float = Field(default=60.0, description="LOW tier rejected beyond this")
    finish_max_date_diff_minutes: float = Field(default=30.0, description="FINISHED requires kickoff within this")

    # Runner
    stale_live_hours: float = Field(default=2.0, description="LIVE games older than this join the pool as stale-live")
    auto_finish_hours: float = Field(default=3.0, description="Unmatched LIVE games older than this are auto-finished")
    report_detail_limit: int = Field(default=20, description="Max rejected/unmatched detail records in a report")
    disambiguation_cache_size: int = Field(default=1000)
    disambiguation_cache_ttl_s: float = Field(default=86400.0)

    # Service loop
    sync_interval_s: float = Field(default=60.0)
    lock_ttl_s: int = Field(default=300, description="TTL for the single-flight sync lock")
    report_ttl_s: int = Field(default=3600)


def get_livesync_settings() -> LiveSyncSettings:
    return LiveSyncSettings()
