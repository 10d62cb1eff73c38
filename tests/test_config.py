"""Tests for YAML configuration."""

from pathlib import Path

import pytest
import yaml

from trackmerge.core.config import CONFIG_KEYS, MergeConfig, load_config
from trackmerge.core.errors import ConfigError
from trackmerge.model import MergeStrategy


def _write(tmp_path, text, name="trackmerge.yaml"):
    p = tmp_path / name
    p.write_text(text, encoding="utf-8")
    return p


class TestDefaults:
    def test_no_file_gives_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        cfg = load_config()
        assert cfg.config_file is None
        opts = cfg.merge_options()
        assert opts.strategy is MergeStrategy.sequential
        assert opts.skip_duplicate_points is True
        assert opts.include_elevation is True
        assert opts.auto_smooth_transitions is True
        assert opts.simplification_tolerance_meters == 10.0
        assert opts.time_gap_threshold_minutes == 30.0

    def test_default_file_picked_up(self, tmp_path, monkeypatch):
        _write(tmp_path, "strategy: interpolated\n", name="trackmerge.yml")
        monkeypatch.chdir(tmp_path)
        cfg = load_config()
        assert cfg.config_file == Path("trackmerge.yml")
        assert cfg.merge_options().strategy is MergeStrategy.interpolated


class TestOverrides:
    def test_values_loaded(self, tmp_path):
        path = _write(
            tmp_path,
            "strategy: Chronological\n"
            "skip_duplicate_points: false\n"
            "simplification_tolerance_meters: 3\n"
            "max_interpolated_points: 7\n",
        )
        opts = load_config(path).merge_options()
        assert opts.strategy is MergeStrategy.chronological
        assert opts.skip_duplicate_points is False
        assert opts.simplification_tolerance_meters == 3.0
        assert opts.max_interpolated_points == 7

    def test_changes_win_over_file_and_none_is_ignored(self, tmp_path):
        path = _write(tmp_path, "strategy: simplified\nsimplification_tolerance_meters: 3\n")
        opts = load_config(path).merge_options(
            strategy="sequential", simplification_tolerance_meters=None
        )
        assert opts.strategy is MergeStrategy.sequential
        assert opts.simplification_tolerance_meters == 3.0

    def test_empty_file_is_defaults(self, tmp_path):
        cfg = load_config(_write(tmp_path, ""))
        assert cfg.overrides == {}


class TestInvalid:
    @pytest.mark.parametrize(
        "text",
        [
            "strategy: fastest\n",
            "skip_duplicate_points: maybe\n",
            "simplification_tolerance_meters: lots\n",
            "simplification_tolerance_meters: -1\n",
            "time_gap_threshold_minutes: -5\n",
            "interpolation_step_meters: 0\n",
            "max_interpolated_points: true\n",
            "colour: red\n",
            "- just\n- a list\n",
            "strategy: [unclosed\n",
        ],
    )
    def test_rejected(self, tmp_path, text):
        with pytest.raises(ConfigError):
            load_config(_write(tmp_path, text))

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigError, match="not found"):
            MergeConfig(tmp_path / "nope.yaml")

    def test_config_error_is_value_error(self, tmp_path):
        with pytest.raises(ValueError):
            load_config(_write(tmp_path, "strategy: fastest\n"))


def test_summary_lists_overrides(tmp_path):
    path = _write(tmp_path, "include_elevation: false\nstrategy: simplified\n")
    summary = load_config(path).get_config_summary()
    assert summary["config_file"] == str(path)
    assert summary["strategy"] == "simplified"
    assert summary["include_elevation"] is False
    assert summary["overridden"] == ["include_elevation", "strategy"]


def test_export_template_round_trips(tmp_path):
    src = _write(tmp_path, "strategy: chronological\ntime_gap_threshold_minutes: 12\n", name="in.yaml")
    out = tmp_path / "out.yaml"
    load_config(src).export_template(out)

    text = out.read_text(encoding="utf-8")
    assert text.startswith("# trackmerge configuration")
    data = yaml.safe_load(text)
    assert list(data) == list(CONFIG_KEYS)
    assert data["strategy"] == "chronological"
    assert data["time_gap_threshold_minutes"] == 12.0

    again = load_config(out).merge_options()
    assert again.strategy is MergeStrategy.chronological
