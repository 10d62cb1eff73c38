"""Integration tests for trackmerge CLI."""

import json

import pytest
from typer.testing import CliRunner

from trackmerge.cli import app
from trackmerge.core.trace import TraceReader


runner = CliRunner()


def _doc(doc_id, name, points):
    return {
        "id": doc_id,
        "file_name": f"{doc_id}.gpx",
        "metadata": {"name": name},
        "tracks": [{"name": "Track", "points": points}],
    }


@pytest.fixture
def bundle(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    path = tmp_path / "docs.json"
    payload = {
        "documents": [
            _doc(
                "a",
                "Morning",
                [
                    {"lat": 45.0, "lon": -120.0, "time": "2024-05-01T09:00:00Z"},
                    {"lat": 45.0, "lon": -120.001, "time": "2024-05-01T09:01:00Z"},
                ],
            ),
            _doc(
                "b",
                "Evening",
                [
                    {"lat": 45.0, "lon": -120.001, "time": "2024-05-01T07:00:00Z"},
                    {"lat": 45.0, "lon": -120.002, "time": "2024-05-01T07:01:00Z"},
                ],
            ),
            _doc("c", "Extra", [{"lat": 45.1, "lon": -120.1}]),
        ]
    }
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def _merged(path):
    data = json.loads(path.read_text(encoding="utf-8"))
    (doc,) = data["documents"]
    return doc


class TestCLI:
    def test_help(self):
        result = runner.invoke(app, ["--help"])
        assert result.exit_code == 0
        assert "merge" in result.stdout
        assert "config" in result.stdout

    def test_merge_help(self):
        result = runner.invoke(app, ["merge", "--help"])
        assert result.exit_code == 0
        assert "--strategy" in result.stdout

    def test_merge_missing_file(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["merge", "nonexistent.json"])
        assert result.exit_code != 0


class TestMerge:
    def test_sequential_merge_writes_output(self, bundle, tmp_path):
        out = tmp_path / "out.json"
        result = runner.invoke(app, ["merge", str(bundle), "-o", str(out)])
        assert result.exit_code == 0, result.stdout
        doc = _merged(out)
        assert doc["metadata"]["name"] == "Merged: Morning + Evening + Extra"
        assert doc["metadata"]["description"] == "Merged from 3 files"
        assert doc["tracks"][0]["name"] == "Merged Track"
        lons = [p["lon"] for p in doc["tracks"][0]["points"]]
        # The shared coordinate is emitted once.
        assert lons == [-120.0, -120.001, -120.002, -120.1]

    def test_chronological_with_exclude(self, bundle, tmp_path):
        out = tmp_path / "out.json"
        result = runner.invoke(
            app, ["merge", str(bundle), "-s", "chronological", "--exclude", "c", "-o", str(out)]
        )
        assert result.exit_code == 0, result.stdout
        points = _merged(out)["tracks"][0]["points"]
        # The 09:01 point repeats the 07:00 coordinate and is dropped after sorting.
        assert [p["time"] for p in points] == [
            "2024-05-01T07:00:00Z",
            "2024-05-01T07:01:00Z",
            "2024-05-01T09:00:00Z",
        ]
        assert [p["lon"] for p in points] == [-120.001, -120.002, -120.0]
        assert _merged(out)["tracks"][0]["segment_breaks"] == [2]

    def test_order_option(self, bundle, tmp_path):
        out = tmp_path / "out.json"
        result = runner.invoke(
            app, ["merge", str(bundle), "--order", "c", "--keep-duplicates", "-o", str(out)]
        )
        assert result.exit_code == 0, result.stdout
        points = _merged(out)["tracks"][0]["points"]
        assert points[0]["lon"] == -120.1
        assert len(points) == 5

    def test_dry_run_writes_nothing(self, bundle, tmp_path):
        out = tmp_path / "out.json"
        result = runner.invoke(app, ["merge", str(bundle), "--dry-run", "-o", str(out)])
        assert result.exit_code == 0
        assert "Dry run" in result.stdout
        assert not out.exists()

    def test_trace_file(self, bundle, tmp_path):
        trace = tmp_path / "trace.jsonl"
        result = runner.invoke(app, ["merge", str(bundle), "--trace", str(trace), "--dry-run"])
        assert result.exit_code == 0
        names = [e["event"] for e in TraceReader(trace)]
        assert "input.documents" in names
        assert "merge.done" in names
        assert "coordinator.publish" in names

    def test_not_enough_documents(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "one.json"
        path.write_text(json.dumps([_doc("a", "Solo", [{"lat": 1, "lon": 1}])]), encoding="utf-8")
        result = runner.invoke(app, ["merge", str(path)])
        assert result.exit_code == 1
        assert "two documents" in result.stdout
        assert not (tmp_path / "merged.json").exists()

    def test_exclude_below_minimum(self, bundle):
        result = runner.invoke(app, ["merge", str(bundle), "--exclude", "a", "--exclude", "b"])
        assert result.exit_code == 1

    def test_unknown_id(self, bundle):
        result = runner.invoke(app, ["merge", str(bundle), "--order", "zzz"])
        assert result.exit_code == 1
        assert "zzz" in result.stdout

    def test_no_timestamps(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "plain.json"
        path.write_text(
            json.dumps([_doc("a", "A", [{"lat": 1, "lon": 1}]), _doc("b", "B", [{"lat": 2, "lon": 2}])]),
            encoding="utf-8",
        )
        result = runner.invoke(app, ["merge", str(path), "-s", "chronological"])
        assert result.exit_code == 1
        assert "timestamps" in result.stdout

    def test_invalid_json(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "bad.json"
        path.write_text("{oops", encoding="utf-8")
        result = runner.invoke(app, ["merge", str(path)])
        assert result.exit_code == 1

    @pytest.mark.parametrize("command", [["merge", "--dry-run"], ["info"]])
    def test_malformed_track_reports_load_error(self, tmp_path, monkeypatch, command):
        monkeypatch.chdir(tmp_path)
        path = tmp_path / "bad.json"
        path.write_text(json.dumps({"documents": [{"id": "a", "tracks": ["oops"]}]}), encoding="utf-8")
        result = runner.invoke(app, [*command, str(path)])
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert "Could not load documents" in result.stdout

    def test_config_file_sets_strategy(self, bundle, tmp_path):
        (tmp_path / "trackmerge.yaml").write_text("strategy: chronological\n", encoding="utf-8")
        out = tmp_path / "out.json"
        result = runner.invoke(app, ["merge", str(bundle), "--exclude", "c", "-o", str(out)])
        assert result.exit_code == 0, result.stdout
        points = _merged(out)["tracks"][0]["points"]
        assert points[0]["time"] == "2024-05-01T07:00:00Z"

    def test_invalid_config_file(self, bundle, tmp_path):
        cfg = tmp_path / "bad.yaml"
        cfg.write_text("strategy: fastest\n", encoding="utf-8")
        result = runner.invoke(app, ["merge", str(bundle), "--config", str(cfg)])
        assert result.exit_code == 1
        assert "Invalid configuration" in result.stdout


class TestInfoAndConfig:
    def test_info(self, bundle):
        result = runner.invoke(app, ["info", str(bundle)])
        assert result.exit_code == 0
        assert "Documents" in result.stdout

    def test_config_show_defaults(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        result = runner.invoke(app, ["config", "show"])
        assert result.exit_code == 0
        assert "(defaults)" in result.stdout
        assert "sequential" in result.stdout

    def test_config_export_and_validate(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        out = tmp_path / "exported.yaml"
        result = runner.invoke(app, ["config", "export", "-o", str(out)])
        assert result.exit_code == 0
        assert out.exists()

        result = runner.invoke(app, ["config", "validate", str(out)])
        assert result.exit_code == 0
        assert "valid" in result.stdout

    def test_config_validate_rejects(self, tmp_path):
        bad = tmp_path / "bad.yaml"
        bad.write_text("skip_duplicate_points: sometimes\n", encoding="utf-8")
        result = runner.invoke(app, ["config", "validate", str(bad)])
        assert result.exit_code == 1

    def test_config_export_rejects_invalid_local_config(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        (tmp_path / "trackmerge.yaml").write_text("strategy: fastest\n", encoding="utf-8")
        out = tmp_path / "exported.yaml"
        result = runner.invoke(app, ["config", "export", "-o", str(out)])
        assert result.exit_code == 1
        assert isinstance(result.exception, SystemExit)
        assert not out.exists()
