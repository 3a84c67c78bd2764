from __future__ import annotations

from pathlib import Path

import pytest

from chat_indexer.config import ConfigOverrides, load_effective_config


def _write(tmp_path: Path, *lines: str) -> None:
    (tmp_path / "chat_indexer.toml").write_text("\n".join(lines), encoding="utf-8")


def test_invalid_field_type_raises_value_error(tmp_path: Path) -> None:
    _write(tmp_path, "[timing]", 'debounce_ms = "fast"')

    with pytest.raises(ValueError, match="timing.debounce_ms"):
        load_effective_config(tmp_path)


def test_invalid_section_type_raises_value_error(tmp_path: Path) -> None:
    _write(tmp_path, 'retry = "often"')

    with pytest.raises(ValueError, match="section 'retry'"):
        load_effective_config(tmp_path)


@pytest.mark.parametrize("value", ["0", "-5", "true"])
def test_non_positive_or_boolean_values_are_rejected(tmp_path: Path, value: str) -> None:
    _write(tmp_path, "[layout]", f"line_height = {value}")

    with pytest.raises(ValueError, match="layout.line_height"):
        load_effective_config(tmp_path)


def test_values_above_cap_are_rejected(tmp_path: Path) -> None:
    _write(tmp_path, "[retry]", "max_attempts = 11")

    with pytest.raises(ValueError, match="<= 10"):
        load_effective_config(tmp_path)


def test_invalid_override_is_rejected(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="overrides.backstop_ms"):
        load_effective_config(tmp_path, ConfigOverrides(backstop_ms=0))


def test_non_boolean_auto_collapse_is_rejected(tmp_path: Path) -> None:
    _write(tmp_path, "[display]", 'auto_collapse = "yes"')

    with pytest.raises(ValueError, match="display.auto_collapse"):
        load_effective_config(tmp_path)


def test_malformed_toml_surfaces_as_value_error(tmp_path: Path) -> None:
    _write(tmp_path, "[timing", "debounce_ms = 1")

    with pytest.raises(ValueError):
        load_effective_config(tmp_path)
