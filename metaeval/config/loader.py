"""
Configuration loader for metaeval.

This module loads the YAML configuration file, validates it with Pydantic
models, checks that every requested metric exists, and resolves relative
paths against the directory holding the configuration file so a run behaves
the same whatever the working directory.

Functions:
    load_config: Main entrypoint to load and validate metaeval.yaml
    resolve_paths: Make every configured path absolute
"""

from pathlib import Path

import yaml
from pydantic import ValidationError

from metaeval.evals.registry import default_registry
from metaeval.exceptions import (
    ConfigFileNotFoundError,
    ConfigValidationError,
)

from .schema import EvalConfig


def _resolve(path: str, base_dir: Path) -> str:
    candidate = Path(path).expanduser()
    if not candidate.is_absolute():
        candidate = base_dir / candidate
    return str(candidate)


def resolve_paths(config: EvalConfig, base_dir: Path) -> EvalConfig:
    """
    Return a copy of config with every path made absolute against base_dir.

    Covers the gold directory, gold file overrides, each backend's corpus
    directory and the diagnostics TSV.
    """
    gold = config.gold.model_copy(
        update={
            "directory": _resolve(config.gold.directory, base_dir),
            "files": {
                metric: _resolve(path, base_dir) for metric, path in config.gold.files.items()
            },
        }
    )
    backends = [
        backend.model_copy(
            update={
                "corpus": backend.corpus.model_copy(
                    update={"directory": _resolve(backend.corpus.directory, base_dir)}
                )
            }
        )
        for backend in config.backends
    ]
    run_settings = config.run_settings
    if run_settings.diagnostics_path:
        run_settings = run_settings.model_copy(
            update={"diagnostics_path": _resolve(run_settings.diagnostics_path, base_dir)}
        )
    return config.model_copy(
        update={"gold": gold, "backends": backends, "run_settings": run_settings}
    )


def load_config(config_path: str | Path) -> EvalConfig:
    """
    Load metaeval.yaml and validate it.

    Args:
        config_path: Path to the YAML file (relative or absolute)

    Returns:
        EvalConfig with absolute paths

    Raises:
        ConfigFileNotFoundError: If config file doesn't exist at the specified path
        ConfigValidationError: If YAML is invalid or config validation fails
        MetricRegistryError: If a configured metric name is unknown

    Example:
        >>> config = load_config("examples/metaeval.yaml")
        >>> [backend.name for backend in config.backends]
        ['science-parse', 'grobid']
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigFileNotFoundError(f"Configuration file not found: {config_path}")

    try:
        with config_path.open(encoding="utf-8") as f:
            raw_config = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigValidationError(f"Invalid YAML syntax in {config_path}: {e}") from e
    except OSError as e:
        raise ConfigValidationError(
            f"Failed to read configuration file {config_path}: {e}"
        ) from e

    if raw_config is None:
        raise ConfigValidationError(f"Configuration file is empty: {config_path}")

    try:
        config = EvalConfig.model_validate(raw_config)
    except ValidationError as e:
        # Format validation errors in a user-friendly way
        error_messages = []
        for error in e.errors():
            loc = ".".join(str(x) for x in error["loc"])
            msg = error["msg"]
            error_messages.append(f"  - {loc}: {msg}")

        raise ConfigValidationError(
            f"Configuration validation failed in {config_path}:\n"
            + "\n".join(error_messages)
        ) from e

    if config.metrics is not None:
        default_registry().select(config.metrics)

    unknown_overrides = sorted(set(config.gold.files) - set(default_registry().names()))
    if unknown_overrides:
        raise ConfigValidationError(
            f"Gold file overrides name unknown metrics in {config_path}: "
            + ", ".join(unknown_overrides)
        )

    return resolve_paths(config, config_path.resolve().parent)
