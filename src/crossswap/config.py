"""Application configuration using pydantic-settings."""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ======================
    # API
    # ======================
    api_host: str = Field(default="0.0.0.0", description="API server host")
    api_port: int = Field(default=8000, description="API server port")

    # ======================
    # Environment
    # ======================
    environment: str = Field(default="development", description="Runtime environment")
    debug: bool = Field(default=True, description="Enable debug mode")
    log_level: str = Field(default="INFO", description="Log level when debug is off")

    # ======================
    # Upstream quote services
    # ======================
    oneinch_api_key: Optional[str] = Field(default=None, description="1inch developer portal API key")
    fusion_api_url: str = Field(
        default="https://api.1inch.dev/fusion", description="1inch Fusion (RFQ) API base URL"
    )
    aggregation_api_url: str = Field(
        default="https://api.1inch.dev/swap/v6.0", description="1inch swap (aggregation) API base URL"
    )
    gas_api_url: str = Field(
        default="https://api.1inch.dev/gas-price/v1.5", description="1inch gas price API base URL"
    )
    default_chain_id: int = Field(default=1, description="Chain used for quoting when a token has none")
    provider_timeout_seconds: float = Field(
        default=30.0, description="Per-provider quote timeout"
    )
    gas_oracle_timeout_seconds: float = Field(
        default=10.0, description="Gas oracle lookup timeout"
    )
    enabled_providers: str = Field(
        default="fusion,aggregation",
        description="Comma-separated provider kinds to query",
    )
    default_gas_preset: str = Field(default="fast", description="Gas preset used for aggregation quotes")
    dry_run: bool = Field(
        default=False, description="Use simulated providers instead of live upstream APIs"
    )

    # ======================
    # Cache & rate limiting
    # ======================
    quote_cache_ttl_seconds: float = Field(default=30.0, description="Scored route cache TTL")
    cache_max_entries: int = Field(default=1000, description="Maximum cached route lists")
    maintenance_interval_seconds: float = Field(
        default=300.0, description="Cache sweep and rate window pruning interval"
    )
    rate_limit_requests: int = Field(default=15, ge=1, description="Requests allowed per window per client")
    rate_limit_window_seconds: float = Field(default=60.0, gt=0, description="Rate limit window width")

    # ======================
    # Scoring policy
    # ======================
    score_price_impact_weight: float = Field(default=0.4, description="Weight of the price impact penalty")
    score_time_weight: float = Field(default=0.2, description="Weight of the completion time penalty")
    score_risk_weight: float = Field(default=0.3, description="Weight of the risk penalty")
    score_price_impact_scale: float = Field(
        default=0.02, description="Price impact at which the penalty reaches ~63%"
    )
    score_time_scale_seconds: float = Field(
        default=600.0, description="Completion time at which the time penalty reaches 50%"
    )
    score_risk_per_note: float = Field(default=0.15, description="Risk added per explicit risk note")
    score_risk_per_price_impact: float = Field(
        default=5.0, description="Risk added per unit of price impact"
    )
    score_protocol_bonus: float = Field(default=0.01, description="Bonus per recognized protocol")
    score_protocol_bonus_cap: float = Field(default=0.05, description="Maximum protocol bonus")
    score_history_weight: float = Field(
        default=0.1, description="Maximum adjustment from recorded outcomes"
    )
    score_history_min_samples: int = Field(
        default=3, description="Outcomes needed before history adjusts scores"
    )
    baseline_gas_units: int = Field(default=250000, description="Gas of a standard unoptimized swap")
    dedupe_tolerance: float = Field(
        default=0.001, description="Relative output difference under which routes are duplicates"
    )
    risk_warning_threshold: float = Field(
        default=0.5, description="Risk score above which insights warn"
    )

    @property
    def is_production(self) -> bool:
        """Check if running in production environment."""
        return self.environment.lower() == "production"

    @property
    def provider_kinds(self) -> list[str]:
        """Parse enabled provider kinds."""
        return [p.strip().lower() for p in self.enabled_providers.split(",") if p.strip()]

    def scoring_weights(self):
        """Build the scorer weights from configuration."""
        from crossswap.scoring.scorer import ScoringWeights

        return ScoringWeights(
            price_impact=self.score_price_impact_weight,
            time=self.score_time_weight,
            risk=self.score_risk_weight,
            price_impact_scale=self.score_price_impact_scale,
            time_scale_seconds=self.score_time_scale_seconds,
            risk_per_note=self.score_risk_per_note,
            risk_per_price_impact=self.score_risk_per_price_impact,
            protocol_bonus=self.score_protocol_bonus,
            protocol_bonus_cap=self.score_protocol_bonus_cap,
            history_weight=self.score_history_weight,
            history_min_samples=self.score_history_min_samples,
            baseline_gas_units=self.baseline_gas_units,
        )

    def get_safe_dict(self) -> dict:
        """Return settings dict with secrets redacted."""
        return {
            "environment": self.environment,
            "debug": self.debug,
            "dry_run": self.dry_run,
            "api_host": self.api_host,
            "api_port": self.api_port,
            "oneinch_api_key": "***" if self.oneinch_api_key else "(not set)",
            "providers": {
                "enabled": self.provider_kinds,
                "fusion": self.fusion_api_url,
                "aggregation": self.aggregation_api_url,
                "gas": self.gas_api_url,
                "timeout_seconds": self.provider_timeout_seconds,
                "default_gas_preset": self.default_gas_preset,
            },
            "cache": {
                "ttl_seconds": self.quote_cache_ttl_seconds,
                "max_entries": self.cache_max_entries,
            },
            "rate_limit": {
                "requests": self.rate_limit_requests,
                "window_seconds": self.rate_limit_window_seconds,
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
