"""
Resolver configuration.

One frozen ResolverConfig is built per run and handed to every component.
Switching industries is a pure parameter change: ``config.with_industry(...)``
returns a new config with that industry's alias tables and thresholds.
"""

import os
from dataclasses import dataclass, field, fields
from datetime import timedelta
from typing import Any, Dict, Mapping, Optional

from .aliases import DEFAULT_INDUSTRY, IndustryProfile, available_industries, load_industry
from .errors import ConfigError


@dataclass(frozen=True)
class PassThresholds:
    strict: int = 70  # minimum score for a pass-1 winner
    relaxed: int = 60  # minimum score for a pass-2 winner
    auto_accept: int = 85
    reject: int = 40
    review_gap: int = 15  # near-tie window under duplicate risk

    def __post_init__(self):
        for f in fields(self):
            value = getattr(self, f.name)
            if not 0 <= value <= 100:
                raise ConfigError(f"Threshold '{f.name}' must be between 0 and 100, got {value}")
        if not self.reject <= self.relaxed <= self.strict <= self.auto_accept:
            raise ConfigError("Thresholds must satisfy reject <= relaxed <= strict <= auto_accept")

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "PassThresholds":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            raise ConfigError(f"Unrecognized threshold option(s): {', '.join(sorted(unknown))}")
        return cls(**{k: int(v) for k, v in data.items()})


@dataclass(frozen=True)
class RateLimits:
    min_delay: float = 1.0  # seconds between search calls
    per_minute: int = 60
    per_hour: int = 1000
    per_day: int = 10000
    batch_delay: float = 3.0  # seconds between batch records

    def __post_init__(self):
        if self.min_delay < 0 or self.batch_delay < 0:
            raise ConfigError("Delays must not be negative")
        if min(self.per_minute, self.per_hour, self.per_day) < 1:
            raise ConfigError("Quotas must allow at least one call")


@dataclass(frozen=True)
class ResolverConfig:
    industry: str = DEFAULT_INDUSTRY
    thresholds: PassThresholds = field(default_factory=PassThresholds)
    rate_limits: RateLimits = field(default_factory=RateLimits)
    cache_ttl: timedelta = timedelta(days=30)
    profile_domain: str = "linkedin.com/in/"
    pass1_results: int = 5
    pass2_results: int = 10
    pass1_candidate_limit: int = 3
    pass2_candidate_limit: int = 5
    max_pass1_strategies: int = 3
    max_pass2_strategies: int = 5
    batch_size: int = 100
    google_api_key: Optional[str] = field(default=None, repr=False)
    google_cse_id: Optional[str] = None

    def __post_init__(self):
        if self.industry not in available_industries():
            raise ConfigError(
                f"Unknown industry profile '{self.industry}'. Choose from: {', '.join(available_industries())}"
            )
        if self.cache_ttl <= timedelta(0):
            raise ConfigError("cache_ttl must be positive")
        if self.pass1_results < 1 or self.pass2_results < 1:
            raise ConfigError("Result counts must be positive")

    @property
    def industry_profile(self) -> IndustryProfile:
        return load_industry(self.industry)

    @classmethod
    def for_industry(cls, industry: str, **overrides) -> "ResolverConfig":
        """Config whose thresholds come from the industry data file."""
        if industry not in available_industries():
            raise ConfigError(
                f"Unknown industry profile '{industry}'. Choose from: {', '.join(available_industries())}"
            )
        if "thresholds" not in overrides:
            overrides["thresholds"] = PassThresholds.from_mapping(load_industry(industry).thresholds)
        return cls(industry=industry, **overrides)

    def with_industry(self, industry: str) -> "ResolverConfig":
        kept = {f.name: getattr(self, f.name) for f in fields(self) if f.name not in ("industry", "thresholds")}
        return ResolverConfig.for_industry(industry, **kept)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None, **overrides) -> "ResolverConfig":
        """
        Build a config from PROFILEFINDER_* and GOOGLE_* environment variables.

        Explicit keyword overrides win over the environment.
        """
        env = os.environ if environ is None else environ
        industry = overrides.pop("industry", None) or env.get("PROFILEFINDER_INDUSTRY", DEFAULT_INDUSTRY)

        kwargs: Dict[str, Any] = {
            "google_api_key": env.get("GOOGLE_API_KEY"),
            "google_cse_id": env.get("GOOGLE_CSE_ID"),
        }
        try:
            if env.get("PROFILEFINDER_CACHE_TTL_HOURS"):
                kwargs["cache_ttl"] = timedelta(hours=float(env["PROFILEFINDER_CACHE_TTL_HOURS"]))
            limits = {}
            if env.get("PROFILEFINDER_MIN_DELAY"):
                limits["min_delay"] = float(env["PROFILEFINDER_MIN_DELAY"])
            if env.get("PROFILEFINDER_BATCH_DELAY"):
                limits["batch_delay"] = float(env["PROFILEFINDER_BATCH_DELAY"])
            for window in ("minute", "hour", "day"):
                var = f"PROFILEFINDER_MAX_PER_{window.upper()}"
                if env.get(var):
                    limits[f"per_{window}"] = int(env[var])
        except ValueError as e:
            raise ConfigError(f"Invalid numeric configuration value: {e}") from e
        if limits:
            kwargs["rate_limits"] = RateLimits(**limits)

        kwargs.update({k: v for k, v in overrides.items() if v is not None})
        return cls.for_industry(industry, **kwargs)
