"""Configuration loading and deterministic merge order."""

from __future__ import annotations

import tomllib
from dataclasses import dataclass, field
from pathlib import Path

CONFIG_FILE_NAME = "chat_indexer.toml"

DEBOUNCE_MS_CAP = 60_000
BACKSTOP_MS_CAP = 600_000
READY_TIMEOUT_MS_CAP = 300_000
READY_POLL_MS_CAP = 10_000
MAX_ATTEMPTS_CAP = 10
BACKOFF_MS_CAP = 60_000
VIEWPORT_WIDTH_CAP = 10_000
SIDEBAR_WIDTH_CAP = 2_000


@dataclass(slots=True, frozen=True)
class TimingConfig:
    """Scan scheduling intervals in milliseconds."""

    debounce_ms: int = 500
    backstop_ms: int = 2000
    ready_timeout_ms: int = 10_000
    ready_poll_ms: int = 500


@dataclass(slots=True, frozen=True)
class RetryConfig:
    """Initialization retry policy."""

    max_attempts: int = 3
    backoff_ms: int = 2000


@dataclass(slots=True, frozen=True)
class LayoutConfig:
    """Parameters of the approximate block-flow layout."""

    viewport_width: int = 1280
    line_height: int = 20
    char_width: int = 8


@dataclass(slots=True, frozen=True)
class DisplaySettings:
    """Presentation hints accepted from the settings provider and ignored by the core."""

    sidebar_width: int = 320
    auto_collapse: bool = False


@dataclass(slots=True, frozen=True)
class IndexerConfig:
    """Fully merged indexer configuration."""

    timing: TimingConfig = field(default_factory=TimingConfig)
    retry: RetryConfig = field(default_factory=RetryConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)
    display: DisplaySettings = field(default_factory=DisplaySettings)
    log_path: Path | None = None

    def to_public_dict(self) -> dict[str, object]:
        """Return serializable config snapshot."""
        return {
            "timing": {
                "debounce_ms": self.timing.debounce_ms,
                "backstop_ms": self.timing.backstop_ms,
                "ready_timeout_ms": self.timing.ready_timeout_ms,
                "ready_poll_ms": self.timing.ready_poll_ms,
            },
            "retry": {
                "max_attempts": self.retry.max_attempts,
                "backoff_ms": self.retry.backoff_ms,
            },
            "layout": {
                "viewport_width": self.layout.viewport_width,
                "line_height": self.layout.line_height,
                "char_width": self.layout.char_width,
            },
            "display": {
                "sidebar_width": self.display.sidebar_width,
                "auto_collapse": self.display.auto_collapse,
            },
            "log_path": str(self.log_path) if self.log_path is not None else None,
        }


@dataclass(slots=True, frozen=True)
class ConfigOverrides:
    """Optional startup overrides applied at highest precedence."""

    debounce_ms: int | None = None
    backstop_ms: int | None = None
    ready_timeout_ms: int | None = None
    max_attempts: int | None = None
    viewport_width: int | None = None
    log_path: Path | None = None


def default_config() -> IndexerConfig:
    """Build the default configuration."""
    return IndexerConfig()


def load_config_file(config_dir: Path) -> dict[str, object]:
    """Load optional chat_indexer.toml from a directory."""
    config_path = config_dir / CONFIG_FILE_NAME
    if not config_path.exists():
        return {}
    with config_path.open("rb") as handle:
        payload = tomllib.load(handle)
    if not isinstance(payload, dict):
        raise ValueError(f"{CONFIG_FILE_NAME} must contain a top-level table.")
    return payload


def _get_table(payload: dict[str, object], key: str) -> dict[str, object]:
    value = payload.get(key, {})
    if not isinstance(value, dict):
        raise ValueError(f"Config section '{key}' must be a table.")
    return value


def merge_config(
    base: IndexerConfig, payload: dict[str, object], overrides: ConfigOverrides
) -> IndexerConfig:
    """Merge defaults, config file, then startup overrides."""
    timing_payload = _get_table(payload, "timing")
    retry_payload = _get_table(payload, "retry")
    layout_payload = _get_table(payload, "layout")
    display_payload = _get_table(payload, "display")
    logging_payload = _get_table(payload, "logging")

    timing = TimingConfig(
        debounce_ms=_optional_positive_int_with_cap(
            timing_payload.get("debounce_ms"),
            "timing.debounce_ms",
            base.timing.debounce_ms,
            DEBOUNCE_MS_CAP,
        ),
        backstop_ms=_optional_positive_int_with_cap(
            timing_payload.get("backstop_ms"),
            "timing.backstop_ms",
            base.timing.backstop_ms,
            BACKSTOP_MS_CAP,
        ),
        ready_timeout_ms=_optional_positive_int_with_cap(
            timing_payload.get("ready_timeout_ms"),
            "timing.ready_timeout_ms",
            base.timing.ready_timeout_ms,
            READY_TIMEOUT_MS_CAP,
        ),
        ready_poll_ms=_optional_positive_int_with_cap(
            timing_payload.get("ready_poll_ms"),
            "timing.ready_poll_ms",
            base.timing.ready_poll_ms,
            READY_POLL_MS_CAP,
        ),
    )
    retry = RetryConfig(
        max_attempts=_optional_positive_int_with_cap(
            retry_payload.get("max_attempts"),
            "retry.max_attempts",
            base.retry.max_attempts,
            MAX_ATTEMPTS_CAP,
        ),
        backoff_ms=_optional_positive_int_with_cap(
            retry_payload.get("backoff_ms"),
            "retry.backoff_ms",
            base.retry.backoff_ms,
            BACKOFF_MS_CAP,
        ),
    )
    layout = LayoutConfig(
        viewport_width=_optional_positive_int_with_cap(
            layout_payload.get("viewport_width"),
            "layout.viewport_width",
            base.layout.viewport_width,
            VIEWPORT_WIDTH_CAP,
        ),
        line_height=_optional_positive_int_with_cap(
            layout_payload.get("line_height"),
            "layout.line_height",
            base.layout.line_height,
            cap=None,
        ),
        char_width=_optional_positive_int_with_cap(
            layout_payload.get("char_width"),
            "layout.char_width",
            base.layout.char_width,
            cap=None,
        ),
    )

    auto_collapse = base.display.auto_collapse
    if "auto_collapse" in display_payload:
        raw_auto_collapse = display_payload["auto_collapse"]
        if not isinstance(raw_auto_collapse, bool):
            raise ValueError("Config field 'display.auto_collapse' must be a boolean.")
        auto_collapse = raw_auto_collapse
    display = DisplaySettings(
        sidebar_width=_optional_positive_int_with_cap(
            display_payload.get("sidebar_width"),
            "display.sidebar_width",
            base.display.sidebar_width,
            SIDEBAR_WIDTH_CAP,
        ),
        auto_collapse=auto_collapse,
    )

    log_path = base.log_path
    if "path" in logging_payload:
        raw_path = logging_payload["path"]
        if not isinstance(raw_path, str) or not raw_path.strip():
            raise ValueError("Config field 'logging.path' must be a non-empty string.")
        log_path = Path(raw_path)

    merged = IndexerConfig(
        timing=timing,
        retry=retry,
        layout=layout,
        display=display,
        log_path=log_path,
    )
    return apply_overrides(merged, overrides)


def apply_overrides(config: IndexerConfig, overrides: ConfigOverrides) -> IndexerConfig:
    """Apply startup overrides at highest precedence."""
    timing = TimingConfig(
        debounce_ms=_optional_positive_int_with_cap(
            overrides.debounce_ms,
            "overrides.debounce_ms",
            config.timing.debounce_ms,
            DEBOUNCE_MS_CAP,
        ),
        backstop_ms=_optional_positive_int_with_cap(
            overrides.backstop_ms,
            "overrides.backstop_ms",
            config.timing.backstop_ms,
            BACKSTOP_MS_CAP,
        ),
        ready_timeout_ms=_optional_positive_int_with_cap(
            overrides.ready_timeout_ms,
            "overrides.ready_timeout_ms",
            config.timing.ready_timeout_ms,
            READY_TIMEOUT_MS_CAP,
        ),
        ready_poll_ms=config.timing.ready_poll_ms,
    )
    retry = RetryConfig(
        max_attempts=_optional_positive_int_with_cap(
            overrides.max_attempts,
            "overrides.max_attempts",
            config.retry.max_attempts,
            MAX_ATTEMPTS_CAP,
        ),
        backoff_ms=config.retry.backoff_ms,
    )
    layout = LayoutConfig(
        viewport_width=_optional_positive_int_with_cap(
            overrides.viewport_width,
            "overrides.viewport_width",
            config.layout.viewport_width,
            VIEWPORT_WIDTH_CAP,
        ),
        line_height=config.layout.line_height,
        char_width=config.layout.char_width,
    )
    return IndexerConfig(
        timing=timing,
        retry=retry,
        layout=layout,
        display=config.display,
        log_path=overrides.log_path or config.log_path,
    )


def load_effective_config(
    config_dir: Path | None = None, overrides: ConfigOverrides | None = None
) -> IndexerConfig:
    """Load effective config using merge order defaults -> config file -> overrides."""
    base = default_config()
    payload = load_config_file(config_dir.resolve()) if config_dir is not None else {}
    return merge_config(base, payload, overrides or ConfigOverrides())


def _optional_positive_int_with_cap(
    value: object,
    name: str,
    default: int,
    cap: int | None,
) -> int:
    if value is None:
        return default
    if isinstance(value, bool) or not isinstance(value, int) or value < 1:
        raise ValueError(f"Config field '{name}' must be a positive integer.")
    if cap is not None and value > cap:
        raise ValueError(f"Config field '{name}' must be <= {cap}.")
    return value
