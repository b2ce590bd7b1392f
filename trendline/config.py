"""Configuration management for the aggregation core with validation and typed access"""

import json
import logging
import os
from pathlib import Path
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, List

from dotenv import load_dotenv

from trendline.utils.errors import ConfigError

logger = logging.getLogger(__name__)

SUPPORTED_SPORTS = ("NBA", "NFL", "MLB", "NHL")


# ============================================================================
# CONFIGURATION DATACLASSES
# ============================================================================

@dataclass
class ProviderConfig:
    """Configuration for the upstream sports data provider"""

    site_base_url: str = "https://site.api.espn.com/apis/site/v2/sports"
    web_base_url: str = "https://site.web.api.espn.com/apis/site/v2/sports"
    core_base_url: str = "https://sports.core.api.espn.com/v2"
    timeout: float = 10.0
    max_retries: int = 1
    backoff_base: float = 2.0
    team_batch_size: int = 5
    team_batch_delay: float = 0.1
    source_timeout: float = 30.0

    def validate(self) -> None:
        """Validate provider configuration"""
        for name in ("site_base_url", "web_base_url", "core_base_url"):
            if not getattr(self, name):
                raise ValueError(f"{name} cannot be empty")
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")
        if self.max_retries < 0:
            raise ValueError(f"max_retries must be >= 0, got {self.max_retries}")
        if self.backoff_base < 1:
            raise ValueError(f"backoff_base must be >= 1, got {self.backoff_base}")
        if self.team_batch_size < 1:
            raise ValueError(f"team_batch_size must be >= 1, got {self.team_batch_size}")
        if self.team_batch_delay < 0:
            raise ValueError("team_batch_delay cannot be negative")
        if self.source_timeout <= 0:
            raise ValueError(f"source_timeout must be > 0, got {self.source_timeout}")


@dataclass
class CacheConfig:
    """Freshness windows (seconds) per resource, plus the local snapshot file"""

    scoreboard_ttl: float = 30
    injuries_ttl: float = 300
    athlete_stats_ttl: float = 300
    predictions_ttl: float = 300
    news_ttl: float = 300
    teams_ttl: float = 3600
    rosters_ttl: float = 3600
    snapshot_enabled: bool = True
    snapshot_path: str = "trendline_snapshots.json"

    def validate(self) -> None:
        """Validate cache configuration"""
        for name in (
            "scoreboard_ttl",
            "injuries_ttl",
            "athlete_stats_ttl",
            "predictions_ttl",
            "news_ttl",
            "teams_ttl",
            "rosters_ttl",
        ):
            value = getattr(self, name)
            if value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        if self.snapshot_enabled and not self.snapshot_path:
            raise ValueError("snapshot_path cannot be empty when snapshots are enabled")


@dataclass
class PollingConfig:
    """Refresh interval table keyed by entity liveness"""

    live_interval: float = 12
    scheduled_interval: float = 30
    final_interval: float = 300

    def validate(self) -> None:
        """Validate polling configuration"""
        if not (0 < self.live_interval <= self.scheduled_interval <= self.final_interval):
            raise ValueError(
                "intervals must satisfy 0 < live <= scheduled <= final, got "
                f"{self.live_interval}/{self.scheduled_interval}/{self.final_interval}"
            )

    def interval_for(self, status: str) -> float:
        if status == "live":
            return self.live_interval
        if status == "final":
            return self.final_interval
        return self.scheduled_interval


@dataclass
class FallbackConfig:
    """When and how much synthetic data is generated"""

    enabled: bool = True
    min_player_trends: int = 5
    min_injuries: int = 1
    synthetic_injury_count: int = 4

    def validate(self) -> None:
        """Validate fallback configuration"""
        if self.min_player_trends < 0:
            raise ValueError(f"min_player_trends must be >= 0, got {self.min_player_trends}")
        if self.min_injuries < 0:
            raise ValueError(f"min_injuries must be >= 0, got {self.min_injuries}")
        if self.synthetic_injury_count < 1:
            raise ValueError(f"synthetic_injury_count must be >= 1, got {self.synthetic_injury_count}")


@dataclass
class AggregationConfig:
    """Scope and limits for one aggregation cycle"""

    sports: List[str] = field(default_factory=lambda: list(SUPPORTED_SPORTS))
    player_trend_limit: int = 20
    player_trend_games: int = 5
    players_per_game: int = 3
    max_team_trends: int = 15
    high_confidence_threshold: int = 65

    def validate(self) -> None:
        """Validate aggregation configuration"""
        if not self.sports:
            raise ValueError("sports cannot be empty")
        normalized = [str(s).strip().upper() for s in self.sports]
        unknown = [s for s in normalized if s not in SUPPORTED_SPORTS]
        if unknown:
            raise ValueError(f"unsupported sports {unknown}; expected a subset of {list(SUPPORTED_SPORTS)}")
        self.sports = normalized
        if self.player_trend_limit < 1:
            raise ValueError(f"player_trend_limit must be >= 1, got {self.player_trend_limit}")
        if self.player_trend_games < 1 or self.players_per_game < 1:
            raise ValueError("player_trend_games and players_per_game must be >= 1")
        if self.max_team_trends < 1:
            raise ValueError(f"max_team_trends must be >= 1, got {self.max_team_trends}")
        if not (0 <= self.high_confidence_threshold <= 100):
            raise ValueError(
                f"high_confidence_threshold must be between 0 and 100, got {self.high_confidence_threshold}"
            )


# ============================================================================
# MAIN CONFIG MANAGER
# ============================================================================

class ConfigManager:
    """
    Central configuration management with validation and typed access

    Every section has defaults, so running without a config file is valid.
    Environment variables (optionally from a .env file) override JSON values.
    """

    def __init__(self, config_file: Optional[str] = None):
        """
        Load and validate configuration from an optional JSON file

        Args:
            config_file: Path to config JSON file

        Raises:
            json.JSONDecodeError: If config file is invalid JSON
            ConfigError: If configuration validation fails
        """
        load_dotenv()

        self.config_path = Path(config_file) if config_file else None

        if self.config_path is None:
            raw_config: Dict[str, Any] = {}
        elif not self.config_path.exists():
            logger.warning(f"Config file not found: {config_file}. Using defaults and environment variables.")
            raw_config = {}
        else:
            with open(self.config_path) as f:
                raw_config = json.load(f)

        self._parse_config(raw_config)

    @staticmethod
    def _env_float(env_var: str, fallback: Any) -> Any:
        val = os.getenv(env_var)
        if val is None or not val.strip():
            return fallback
        try:
            return float(val)
        except ValueError:
            raise ConfigError(f"{env_var} must be a number, got {val!r}", config_key=env_var)

    @staticmethod
    def _env_str(env_var: str, fallback: Any) -> Any:
        val = os.getenv(env_var)
        if val is None or not val.strip():
            return fallback
        return val.strip()

    @staticmethod
    def _validate_section(name: str, section: Any) -> None:
        try:
            section.validate()
        except ValueError as e:
            raise ConfigError(f"Invalid {name} config: {e}", config_key=name)

    def _parse_config(self, raw_config: Dict[str, Any]) -> None:
        """Parse raw JSON config into typed dataclasses"""

        provider_raw = raw_config.get('provider', {})
        self.provider = ProviderConfig(
            site_base_url=self._env_str(
                'TRENDLINE_SITE_BASE_URL',
                provider_raw.get('site_base_url', ProviderConfig.site_base_url),
            ),
            web_base_url=provider_raw.get('web_base_url', ProviderConfig.web_base_url),
            core_base_url=self._env_str(
                'TRENDLINE_CORE_BASE_URL',
                provider_raw.get('core_base_url', ProviderConfig.core_base_url),
            ),
            timeout=self._env_float('TRENDLINE_HTTP_TIMEOUT', provider_raw.get('timeout', 10.0)),
            max_retries=provider_raw.get('max_retries', 1),
            backoff_base=provider_raw.get('backoff_base', 2.0),
            team_batch_size=provider_raw.get('team_batch_size', 5),
            team_batch_delay=provider_raw.get('team_batch_delay', 0.1),
            source_timeout=provider_raw.get('source_timeout', 30.0),
        )
        self._validate_section('provider', self.provider)

        cache_raw = raw_config.get('cache', {})
        self.cache = CacheConfig(
            scoreboard_ttl=cache_raw.get('scoreboard_ttl', 30),
            injuries_ttl=cache_raw.get('injuries_ttl', 300),
            athlete_stats_ttl=cache_raw.get('athlete_stats_ttl', 300),
            predictions_ttl=cache_raw.get('predictions_ttl', 300),
            news_ttl=cache_raw.get('news_ttl', 300),
            teams_ttl=cache_raw.get('teams_ttl', 3600),
            rosters_ttl=cache_raw.get('rosters_ttl', 3600),
            snapshot_enabled=cache_raw.get('snapshot_enabled', True),
            snapshot_path=self._env_str(
                'TRENDLINE_SNAPSHOT_PATH',
                cache_raw.get('snapshot_path', 'trendline_snapshots.json'),
            ),
        )
        self._validate_section('cache', self.cache)

        polling_raw = raw_config.get('polling', {})
        self.polling = PollingConfig(
            live_interval=polling_raw.get('live_interval', 12),
            scheduled_interval=polling_raw.get('scheduled_interval', 30),
            final_interval=polling_raw.get('final_interval', 300),
        )
        self._validate_section('polling', self.polling)

        fallback_raw = raw_config.get('fallback', {})
        self.fallback = FallbackConfig(
            enabled=fallback_raw.get('enabled', True),
            min_player_trends=fallback_raw.get('min_player_trends', 5),
            min_injuries=fallback_raw.get('min_injuries', 1),
            synthetic_injury_count=fallback_raw.get('synthetic_injury_count', 4),
        )
        self._validate_section('fallback', self.fallback)

        aggregation_raw = raw_config.get('aggregation', {})
        self.aggregation = AggregationConfig(
            sports=list(aggregation_raw.get('sports', SUPPORTED_SPORTS)),
            player_trend_limit=aggregation_raw.get('player_trend_limit', 20),
            player_trend_games=aggregation_raw.get('player_trend_games', 5),
            players_per_game=aggregation_raw.get('players_per_game', 3),
            max_team_trends=aggregation_raw.get('max_team_trends', 15),
            high_confidence_threshold=aggregation_raw.get('high_confidence_threshold', 65),
        )
        self._validate_section('aggregation', self.aggregation)

        source = self.config_path or "defaults"
        logger.info(f"✅ Configuration loaded and validated from {source}")

    # ========================================================================
    # CONVENIENCE PROPERTIES
    # ========================================================================

    @property
    def sports(self) -> List[str]:
        """Sports covered by the "all" scope"""
        return list(self.aggregation.sports)

    @property
    def snapshot_path(self) -> Optional[str]:
        """Snapshot file path, or None when persistence is disabled"""
        return self.cache.snapshot_path if self.cache.snapshot_enabled else None

    def log_config_summary(self) -> None:
        """Log a summary of the loaded configuration"""
        logger.info("=" * 60)
        logger.info("📋 CONFIGURATION SUMMARY")
        logger.info("=" * 60)
        logger.info(f"Provider: {self.provider.site_base_url} (timeout {self.provider.timeout}s, "
                    f"retries {self.provider.max_retries})")
        logger.info(f"Sports: {', '.join(self.sports)}")
        logger.info(f"Cache TTLs: scoreboard {self.cache.scoreboard_ttl}s, injuries {self.cache.injuries_ttl}s, "
                    f"predictions {self.cache.predictions_ttl}s, news {self.cache.news_ttl}s")
        logger.info(f"Polling: live {self.polling.live_interval}s, scheduled {self.polling.scheduled_interval}s, "
                    f"final {self.polling.final_interval}s")
        logger.info(f"Fallback: {'✅ Enabled' if self.fallback.enabled else '❌ Disabled'} "
                    f"(min player trends {self.fallback.min_player_trends}, min injuries {self.fallback.min_injuries})")
        logger.info("=" * 60)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary for debugging/serialization"""
        return {
            'provider': {
                'site_base_url': self.provider.site_base_url,
                'web_base_url': self.provider.web_base_url,
                'core_base_url': self.provider.core_base_url,
                'timeout': self.provider.timeout,
                'max_retries': self.provider.max_retries,
                'backoff_base': self.provider.backoff_base,
                'team_batch_size': self.provider.team_batch_size,
                'team_batch_delay': self.provider.team_batch_delay,
                'source_timeout': self.provider.source_timeout,
            },
            'cache': {
                'scoreboard_ttl': self.cache.scoreboard_ttl,
                'injuries_ttl': self.cache.injuries_ttl,
                'athlete_stats_ttl': self.cache.athlete_stats_ttl,
                'predictions_ttl': self.cache.predictions_ttl,
                'news_ttl': self.cache.news_ttl,
                'teams_ttl': self.cache.teams_ttl,
                'rosters_ttl': self.cache.rosters_ttl,
                'snapshot_enabled': self.cache.snapshot_enabled,
                'snapshot_path': self.cache.snapshot_path,
            },
            'polling': {
                'live_interval': self.polling.live_interval,
                'scheduled_interval': self.polling.scheduled_interval,
                'final_interval': self.polling.final_interval,
            },
            'fallback': {
                'enabled': self.fallback.enabled,
                'min_player_trends': self.fallback.min_player_trends,
                'min_injuries': self.fallback.min_injuries,
                'synthetic_injury_count': self.fallback.synthetic_injury_count,
            },
            'aggregation': {
                'sports': self.sports,
                'player_trend_limit': self.aggregation.player_trend_limit,
                'player_trend_games': self.aggregation.player_trend_games,
                'players_per_game': self.aggregation.players_per_game,
                'max_team_trends': self.aggregation.max_team_trends,
                'high_confidence_threshold': self.aggregation.high_confidence_threshold,
            },
        }
