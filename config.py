"""
Typed configuration — single source of truth for runtime settings.

SRP: This module's sole responsibility is loading and validating configuration.
All env-var reads are consolidated here; no other module should call os.getenv().
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Tuple
from dotenv import load_dotenv

load_dotenv()


def _env(key: str, default: str) -> str:
    return os.getenv(key, default)


def _env_int(key: str, default: str) -> int:
    return int(_env(key, default))


def _env_float(key: str, default: str) -> float:
    return float(_env(key, default))


def _env_ints(key: str, default: str) -> Tuple[int, ...]:
    raw = _env(key, default)
    return tuple(int(part) for part in raw.split(",") if part.strip())


# ── Advisor runtime ──────────────────────────────────────────────────────────

@dataclass(frozen=True)
class AdvisorConfig:
    """Expert advisor runtime parameters."""
    captured_ticks_maxlen: int = _env_int("ADVISOR_CAPTURED_TICKS_MAXLEN", "1000")


# ── Market watcher ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class WatcherConfig:
    """Timeframes (seconds) used when a symbol is watched for periods."""
    period_timeframes: Tuple[int, ...] = field(
        default_factory=lambda: _env_ints("WATCHER_PERIOD_TIMEFRAMES", "60,300"))


# ── Paper broker ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PaperBrokerConfig:
    """Simulated broker settings."""
    commission_per_unit: float = _env_float("PAPER_COMMISSION_PER_UNIT", "0.0")


# ── Logging ──────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class LoggingConfig:
    level: str = _env("LOG_LEVEL", "INFO")


# ── Top-level aggregate ─────────────────────────────────────────────────────

@dataclass(frozen=True)
class RuntimeConfig:
    """
    Root configuration object — compose all sub-configs.

    Usage:
        cfg = RuntimeConfig()              # loads from env
        print(cfg.advisor.captured_ticks_maxlen)
        print(cfg.watcher.period_timeframes)
    """
    advisor: AdvisorConfig = field(default_factory=AdvisorConfig)
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
    paper: PaperBrokerConfig = field(default_factory=PaperBrokerConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


# Module-level singleton (immutable, safe to share)
_cfg: RuntimeConfig | None = None


def get_config() -> RuntimeConfig:
    """Get the global immutable config. Created once, never mutated."""
    global _cfg
    if _cfg is None:
        _cfg = RuntimeConfig()
    return _cfg
