"""Tests for the mass import command line interface."""

import json
from pathlib import Path

from click.testing import CliRunner

from mass_importer.checkpoint.store import CheckpointStore
from mass_importer.cli.main import cli
from mass_importer.pipeline.orchestrator import ImportOrchestrator
from mass_importer.reporting.generator import ReportGenerator
from mass_importer.testing import InMemoryCorpus, ScriptedIngestion
from tests.fixtures.synthetic import geojson_fixtures


def _in_memory_factory(base: Path, ingestion: ScriptedIngestion):
    """Orchestrator factory that swaps the HTTP collaborators for fakes."""

    def factory(config, *, checkpoint_dir=None, report_dir=None, confirm=None, stop_controller=None):
        return ImportOrchestrator(
            config,
            corpus=InMemoryCorpus(),
            ingestion=ingestion,
            checkpoint_store=CheckpointStore(checkpoint_dir or base / "checkpoints"),
            report_generator=ReportGenerator(report_dir or base / "reports"),
            confirm=confirm,
            stop_controller=stop_controller,
        )

    return factory


class TestImportersCommand:
    """Test suite for the importers listing."""

    def test_lists_registered_importers(self):
        result = CliRunner().invoke(cli, ["importers"])

        assert result.exit_code == 0
        names = [line.split()[0] for line in result.output.splitlines()]
        assert names == ["geojson", "json", "vancouver"]
        assert "Maps Point features" in result.output


class TestValidateCommand:
    """Test suite for the validate command."""

    def test_valid_input(self, write_json):
        path = write_json(geojson_fixtures.feature_collection(2))

        result = CliRunner().invoke(cli, ["validate", str(path)])

        assert result.exit_code == 0
        assert "Records:   2" in result.output
        assert "Invalid:   0" in result.output

    def test_invalid_records_exit_nonzero(self, write_json):
        payload = geojson_fixtures.feature_collection(1)
        payload["features"].append(geojson_fixtures.INVALID_FEATURE)
        path = write_json(payload)

        result = CliRunner().invoke(cli, ["validate", str(path), "--json"])

        assert result.exit_code == 1
        data = json.loads(result.output)
        assert data["total"] == 2
        assert data["valid"] == 1
        assert data["invalid"][0]["source_id"] == "node/999"

    def test_unknown_importer(self, write_json):
        path = write_json(geojson_fixtures.feature_collection(1))

        result = CliRunner().invoke(cli, ["validate", str(path), "--importer", "csv"])

        assert result.exit_code == 1
        assert "csv" in result.output

    def test_unparseable_file(self, tmp_path):
        path = tmp_path / "broken.geojson"
        path.write_text("{not json", encoding="utf-8")

        result = CliRunner().invoke(cli, ["validate", str(path)])

        assert result.exit_code == 1
        assert "Cannot load" in result.output


class TestRunCommand:
    """Test suite for the run command."""

    def test_run_completes(self, write_json, tmp_path):
        path = write_json(geojson_fixtures.feature_collection(2))
        ingestion = ScriptedIngestion()

        result = CliRunner().invoke(
            cli,
            ["run", str(path), "--yes"],
            obj={"orchestrator_factory": _in_memory_factory(tmp_path, ingestion)},
        )

        assert result.exit_code == 0, result.output
        assert "MASS IMPORT SUMMARY" in result.output
        assert "Report written" in result.output
        assert len(ingestion.submitted) == 2
        assert list((tmp_path / "reports").glob("*.json"))

    def test_dry_run_and_limit(self, write_json, tmp_path):
        path = write_json(geojson_fixtures.feature_collection(3))
        ingestion = ScriptedIngestion()

        result = CliRunner().invoke(
            cli,
            ["run", str(path), "--dry-run", "--limit", "2"],
            obj={"orchestrator_factory": _in_memory_factory(tmp_path, ingestion)},
        )

        assert result.exit_code == 0, result.output
        assert "(DRY RUN)" in result.output
        assert "Total:                2" in result.output
        assert ingestion.submitted == []

    def test_failed_item_sets_exit_code(self, write_json, tmp_path):
        from mass_importer.exceptions import SubmissionValidationError

        path = write_json(geojson_fixtures.feature_collection(1))
        ingestion = ScriptedIngestion([SubmissionValidationError("rejected", status_code=422)])

        result = CliRunner().invoke(
            cli,
            ["run", str(path)],
            obj={"orchestrator_factory": _in_memory_factory(tmp_path, ingestion)},
        )

        assert result.exit_code == 1

    def test_abort_keeps_checkpoint(self, write_json, tmp_path):
        from mass_importer.exceptions import AuthenticationError

        path = write_json(geojson_fixtures.feature_collection(2))
        ingestion = ScriptedIngestion([AuthenticationError("credentials rejected")])

        result = CliRunner().invoke(
            cli,
            ["run", str(path)],
            obj={"orchestrator_factory": _in_memory_factory(tmp_path, ingestion)},
        )

        assert result.exit_code == 2
        assert "Checkpoint kept" in result.output
        assert "credentials rejected" in result.output
        assert list((tmp_path / "checkpoints").glob("*.checkpoint.json"))

    def test_resume_and_fresh_start_conflict(self, write_json):
        path = write_json(geojson_fixtures.feature_collection(1))

        result = CliRunner().invoke(cli, ["run", str(path), "--resume", "--fresh-start"])

        assert result.exit_code == 2
        assert "mutually exclusive" in result.output

    def test_unknown_importer(self, write_json):
        path = write_json(geojson_fixtures.feature_collection(1))

        result = CliRunner().invoke(cli, ["run", str(path), "--importer", "csv"])

        assert result.exit_code == 1
        assert "csv" in result.output

    def test_invalid_config_file(self, tmp_path, write_json):
        path = write_json(geojson_fixtures.feature_collection(1))
        config = tmp_path / "run.yaml"
        config.write_text("matching:\n  high_threshold: 0.5\n  warn_threshold: 0.9\n", encoding="utf-8")

        result = CliRunner().invoke(cli, ["run", str(path), "--config", str(config)])

        assert result.exit_code == 1
