"""
Tests for config.loader and config.schema - YAML loading and validation.

Covers:
- Valid configs load with defaults and absolute paths
- Missing, empty and syntactically invalid files
- Schema rules (backend count, unique names, plugin options, thresholds)
- Metric selection and gold file overrides
"""

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from metaeval.config.loader import load_config, resolve_paths
from metaeval.config.schema import (
    BackendConfig,
    EvalConfig,
    HealthSettings,
    RunSettings,
)
from metaeval.exceptions import (
    ConfigFileNotFoundError,
    ConfigValidationError,
    MetricRegistryError,
)


def backend(name, plugin="json", **extra):
    return {"name": name, "plugin": plugin, "corpus": {"directory": name}, **extra}


@pytest.fixture
def minimal_config():
    return {
        "gold": {"directory": "golddata"},
        "backends": [backend("science-parse"), backend("grobid")],
    }


@pytest.fixture
def write_config(tmp_path):
    def _write(data, name="metaeval.yaml"):
        path = tmp_path / name
        path.write_text(yaml.safe_dump(data), encoding="utf-8")
        return path

    return _write


class TestLoadConfig:
    """Test load_config() happy paths."""

    def test_minimal_config_defaults(self, write_config, minimal_config):
        config = load_config(write_config(minimal_config))

        assert config.metrics is None
        assert config.run_settings.max_documents == 1000
        assert config.run_settings.max_concurrent_documents == 8
        assert config.run_settings.progress_interval == 50
        assert config.run_settings.document_timeout_seconds is None
        assert config.health.min_documents_per_second == 1.0
        assert config.health.max_failure_rate == 0.05
        assert config.health.top_errors == 10
        assert config.backends[0].corpus.suffix == ".pdf"
        assert config.backends[0].enforce_health is True

    def test_baseline_is_first_backend(self, write_config, minimal_config):
        assert load_config(write_config(minimal_config)).baseline.name == "science-parse"

    def test_relative_paths_resolved_against_config_dir(self, tmp_path, minimal_config):
        subdir = tmp_path / "project"
        subdir.mkdir()
        minimal_config["gold"]["files"] = {"title": "custom/title.tsv"}
        path = subdir / "metaeval.yaml"
        path.write_text(yaml.safe_dump(minimal_config), encoding="utf-8")

        config = load_config(path)

        project = subdir.resolve()
        assert config.gold.directory == str(project / "golddata")
        assert config.gold.files["title"] == str(project / "custom" / "title.tsv")
        assert config.backends[1].corpus.directory == str(project / "grobid")
        assert config.run_settings.diagnostics_path == str(project / "MetaEvalErrors.tsv")

    def test_absolute_paths_kept(self, write_config, minimal_config, tmp_path):
        gold = tmp_path / "elsewhere"
        minimal_config["gold"]["directory"] = str(gold)

        config = load_config(write_config(minimal_config))

        assert config.gold.directory == str(gold)

    def test_diagnostics_can_be_disabled(self, write_config, minimal_config):
        minimal_config["run_settings"] = {"diagnostics_path": None}

        config = load_config(write_config(minimal_config))

        assert config.run_settings.diagnostics_path is None

    def test_metric_selection(self, write_config, minimal_config):
        minimal_config["metrics"] = ["title", "bibAll"]

        assert load_config(write_config(minimal_config)).metrics == ["title", "bibAll"]

    def test_callable_backend_options(self, write_config, minimal_config):
        minimal_config["backends"][0] = backend(
            "science-parse", plugin="callable", options={"parser": "sciparse.api:parse_pdf"}
        )

        config = load_config(write_config(minimal_config))

        assert config.backends[0].options == {"parser": "sciparse.api:parse_pdf"}

    def test_accepts_string_path(self, write_config, minimal_config):
        assert load_config(str(write_config(minimal_config))).baseline.name == "science-parse"


class TestLoadConfigErrors:
    """Test load_config() failure modes."""

    def test_missing_file(self, tmp_path):
        with pytest.raises(ConfigFileNotFoundError):
            load_config(tmp_path / "missing.yaml")

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text("gold: [unclosed", encoding="utf-8")

        with pytest.raises(ConfigValidationError, match="Invalid YAML syntax"):
            load_config(path)

    def test_empty_file(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")

        with pytest.raises(ConfigValidationError, match="empty"):
            load_config(path)

    def test_missing_gold_section(self, write_config, minimal_config):
        del minimal_config["gold"]

        with pytest.raises(ConfigValidationError, match="  - gold: Field required"):
            load_config(write_config(minimal_config))

    def test_single_backend_rejected(self, write_config, minimal_config):
        minimal_config["backends"] = minimal_config["backends"][:1]

        with pytest.raises(ConfigValidationError, match="at least 2 backends"):
            load_config(write_config(minimal_config))

    def test_duplicate_backend_names(self, write_config, minimal_config):
        minimal_config["backends"] = [backend("grobid"), backend("grobid")]

        with pytest.raises(ConfigValidationError, match="duplicate backend names: grobid"):
            load_config(write_config(minimal_config))

    def test_unknown_plugin(self, write_config, minimal_config):
        minimal_config["backends"][1] = backend("grobid", plugin="grobid-http")

        with pytest.raises(ConfigValidationError, match="unknown backend plugin 'grobid-http'"):
            load_config(write_config(minimal_config))

    def test_invalid_plugin_options(self, write_config, minimal_config):
        minimal_config["backends"][0] = backend("science-parse", plugin="callable")

        with pytest.raises(ConfigValidationError, match="Missing 'parser' option"):
            load_config(write_config(minimal_config))

    def test_unknown_metric(self, write_config, minimal_config):
        minimal_config["metrics"] = ["title", "titel"]

        with pytest.raises(MetricRegistryError, match="Unknown metric: 'titel'"):
            load_config(write_config(minimal_config))

    def test_empty_metric_list(self, write_config, minimal_config):
        minimal_config["metrics"] = []

        with pytest.raises(ConfigValidationError, match="metrics cannot be an empty list"):
            load_config(write_config(minimal_config))

    def test_duplicate_metrics(self, write_config, minimal_config):
        minimal_config["metrics"] = ["title", "title"]

        with pytest.raises(ConfigValidationError, match="duplicate metric names: title"):
            load_config(write_config(minimal_config))

    def test_gold_override_for_unknown_metric(self, write_config, minimal_config):
        minimal_config["gold"]["files"] = {"titel": "x.tsv"}

        with pytest.raises(ConfigValidationError, match="unknown metrics.*titel"):
            load_config(write_config(minimal_config))

    def test_top_level_not_a_mapping(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")

        with pytest.raises(ConfigValidationError):
            load_config(path)


class TestSettingsValidation:
    """Test field validators on settings models."""

    @pytest.mark.parametrize(
        "settings",
        [
            {"max_documents": 0},
            {"max_concurrent_documents": 0},
            {"max_concurrent_documents": 65},
            {"progress_interval": -1},
            {"document_timeout_seconds": 0},
        ],
    )
    def test_invalid_run_settings(self, settings):
        with pytest.raises(ValidationError):
            RunSettings(**settings)

    @pytest.mark.parametrize(
        "settings",
        [
            {"min_documents_per_second": -0.1},
            {"max_failure_rate": 0.0},
            {"max_failure_rate": 1.5},
            {"top_errors": 0},
        ],
    )
    def test_invalid_health_settings(self, settings):
        with pytest.raises(ValidationError):
            HealthSettings(**settings)

    def test_failure_rate_of_one_allowed(self):
        assert HealthSettings(max_failure_rate=1.0).max_failure_rate == 1.0

    def test_blank_backend_name(self):
        with pytest.raises(ValidationError, match="backend name cannot be empty"):
            BackendConfig(name=" ", plugin="json", corpus={"directory": "x"})

    def test_blank_corpus_directory(self):
        with pytest.raises(ValidationError, match="corpus directory cannot be empty"):
            BackendConfig(name="x", plugin="json", corpus={"directory": ""})


def test_resolve_paths_returns_copy(minimal_config):
    config = EvalConfig.model_validate(minimal_config)

    resolved = resolve_paths(config, Path("/data/eval"))

    assert config.gold.directory == "golddata"
    assert resolved.gold.directory == str(Path("/data/eval/golddata"))
    assert resolved.backends[0].corpus.directory == str(Path("/data/eval/science-parse"))
