"""Integration tests for harmonize() and the CLI."""

import h5py
import pyarrow.parquet as pq
import pytest
import yaml

import harmonizer.main
from conftest import write_current_run, write_invalid_run, write_legacy_run
from harmonizer.config import HarmonizerConfig
from harmonizer.data.scan import scan
from harmonizer.data.run_paths import construct_run_path
from harmonizer.main import harmonize, main
from harmonizer.output_formatter import format_bytes
from harmonizer.errors import SchemaError


def make_config(merger_dir, harmonic_dir, harmonic_size=1 << 40, min_run=0, max_run=5):
    return HarmonizerConfig(
        merger_path=merger_dir,
        harmonic_path=harmonic_dir,
        harmonic_size=harmonic_size,
        min_run=min_run,
        max_run=max_run,
    )


class TestHarmonize:
    """Tests for the main processing loop."""

    def test_single_file(self, merger_dir, harmonic_dir):
        """With a large threshold everything lands in run_0000."""
        write_legacy_run(merger_dir, 0, num_events=3, num_scalers=4)
        write_current_run(merger_dir, 3, num_events=2, scaler_bounds=(0, 3))

        result = harmonize(make_config(merger_dir, harmonic_dir), show_progress=False)

        assert result.events_written == 5
        assert result.harmonic_runs == [construct_run_path(harmonic_dir, 0)]
        with h5py.File(result.harmonic_runs[0], "r") as f:
            assert f["events"].attrs["max_event"] == 5
        assert pq.read_table(result.scaler_path).num_rows == 8

    def test_many_files(self, merger_dir, harmonic_dir):
        """A tiny threshold puts one event per file plus a final empty file."""
        write_legacy_run(merger_dir, 0, num_events=2, num_scalers=1)
        config = make_config(merger_dir, harmonic_dir, harmonic_size=1, max_run=0)

        result = harmonize(config, show_progress=False)

        assert result.events_written == 2
        assert len(result.harmonic_runs) == 3

    def test_uses_given_scan(self, merger_dir, harmonic_dir, monkeypatch):
        """A scan summary passed in is not recomputed."""
        write_legacy_run(merger_dir, 0, num_events=3, num_scalers=1)
        config = make_config(merger_dir, harmonic_dir, max_run=0)
        summary = scan(merger_dir, 0, 0)

        def fail_scan(*args, **kwargs):
            raise AssertionError("range scanned twice")

        monkeypatch.setattr(harmonizer.main, "scan", fail_scan)
        result = harmonize(config, show_progress=False, summary=summary)
        assert result.events_written == summary.total_events == 3

    def test_cli_scans_once(self, merger_dir, harmonic_dir, temp_dir, monkeypatch):
        """The CLI scans the range once for both bytes and events."""
        write_legacy_run(merger_dir, 0, num_events=2, num_scalers=1)
        config_path = temp_dir / "config.yml"
        make_config(merger_dir, harmonic_dir, max_run=0).save(config_path)

        calls = []

        def counting_scan(*args, **kwargs):
            calls.append(args)
            return scan(*args, **kwargs)

        monkeypatch.setattr(harmonizer.main, "scan", counting_scan)
        assert main(["-c", str(config_path), "--no-progress"]) == 0
        assert len(calls) == 1

    def test_invalid_run_fails_before_output(self, merger_dir, harmonic_dir):
        """A schema violation is raised before any harmonic run exists."""
        write_legacy_run(merger_dir, 0, num_events=2)
        write_invalid_run(merger_dir, 2)

        with pytest.raises(SchemaError):
            harmonize(make_config(merger_dir, harmonic_dir), show_progress=False)
        assert list(harmonic_dir.iterdir()) == []


class TestCli:
    """Tests for the command line interface."""

    def test_new_writes_template(self, temp_dir):
        """'new' writes a loadable template configuration."""
        config_path = temp_dir / "config.yml"
        assert main(["--config", str(config_path), "new"]) == 0
        assert HarmonizerConfig.load(config_path) == HarmonizerConfig.template()

    def test_full_run(self, merger_dir, harmonic_dir, temp_dir, capsys):
        """A valid configuration harmonizes and reports completion."""
        write_current_run(merger_dir, 1, num_events=4, scaler_bounds=(0, 1))
        config_path = temp_dir / "config.yml"
        make_config(merger_dir, harmonic_dir, min_run=1, max_run=1).save(config_path)

        assert main(["-c", str(config_path), "--no-progress"]) == 0
        assert "Complete." in capsys.readouterr().out
        assert construct_run_path(harmonic_dir, 0).exists()
        assert (harmonic_dir / "scalers.parquet").exists()

    def test_missing_harmonic_path(self, merger_dir, temp_dir, capsys):
        """The harmonic path has to exist before running."""
        config_path = temp_dir / "config.yml"
        make_config(merger_dir, temp_dir / "absent").save(config_path)

        assert main(["-c", str(config_path)]) == 1
        assert "does not exist" in capsys.readouterr().out

    def test_missing_merger_path(self, harmonic_dir, temp_dir):
        """The merger path has to exist."""
        config_path = temp_dir / "config.yml"
        make_config(temp_dir / "absent", harmonic_dir).save(config_path)
        assert main(["-c", str(config_path)]) == 1

    def test_new_into_missing_directory(self, temp_dir, capsys):
        """An unwritable template path is reported with exit status 1."""
        config_path = temp_dir / "absent" / "config.yml"
        assert main(["-c", str(config_path), "new"]) == 1
        assert "Could not write configuration" in capsys.readouterr().out
        assert not config_path.exists()

    def test_null_path_in_config(self, harmonic_dir, temp_dir):
        """A config with a null path exits with status 1."""
        config_path = temp_dir / "config.yml"
        with open(config_path, "w", encoding="utf-8") as f:
            yaml.safe_dump(
                {
                    "merger_path": None,
                    "harmonic_path": str(harmonic_dir),
                    "harmonic_size": 1000,
                    "min_run": 0,
                    "max_run": 1,
                },
                f,
            )
        assert main(["-c", str(config_path)]) == 1

    def test_missing_config(self, temp_dir):
        """A missing configuration file is reported, not raised."""
        assert main(["-c", str(temp_dir / "nope.yml")]) == 1

    def test_schema_error_exit_status(self, merger_dir, harmonic_dir, temp_dir):
        """Harmonizer errors map to exit status 1."""
        write_invalid_run(merger_dir, 0)
        config_path = temp_dir / "config.yml"
        make_config(merger_dir, harmonic_dir).save(config_path)
        assert main(["-c", str(config_path), "--no-progress"]) == 1


class TestFormatBytes:
    """Tests for human readable byte counts."""

    def test_bytes(self):
        assert format_bytes(512) == "512 B"

    def test_kibibytes(self):
        assert format_bytes(1536) == "1.5 KiB"

    def test_gibibytes(self):
        assert format_bytes(10 * 1024 ** 3) == "10.0 GiB"

    def test_negative(self):
        with pytest.raises(ValueError):
            format_bytes(-1)
