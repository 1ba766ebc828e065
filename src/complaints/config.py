"""Environment-aware configuration loader.

Loads YAML config from config/complaints.{env}.yaml and the selected
taxonomy from config/taxonomies/. The taxonomy is validated here, so a
broken taxonomy stops the process before any record is read.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from complaints.taxonomy import Taxonomy, load_taxonomy

VALID_ENVS = ("dev", "staging", "prod")
ENV_VAR = "COMPLAINTS_ENV"
PROJECT_ROOT = Path(__file__).resolve().parent.parent.parent
DEFAULT_LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


@dataclass(frozen=True)
class PathsConfig:
    """Filesystem paths for data I/O."""

    input_file: str
    output_dir: str
    schemas_dir: str


@dataclass(frozen=True)
class ClassifierConfig:
    """Which taxonomy to classify with and how."""

    taxonomy: str = "retail_v3"
    use_sheet_labels: bool = False


@dataclass(frozen=True)
class SentimentConfig:
    """Score thresholds for the sentiment label."""

    positive_threshold: int = 1
    negative_threshold: int = -1


@dataclass(frozen=True)
class BatchConfig:
    """Batch classification settings."""

    workers: int = 1
    chunk_size: int = 500


@dataclass(frozen=True)
class AnalyticsConfig:
    """Result limits for the dashboard aggregates."""

    top_keywords: int = 50
    top_complaints: int = 10
    top_users: int = 10
    top_recommendations: int = 3


@dataclass(frozen=True)
class LoggingConfig:
    """Logging settings."""

    level: str = "INFO"
    format: str = DEFAULT_LOG_FORMAT


@dataclass(frozen=True)
class ValidationConfig:
    """Report schema validation settings."""

    strict: bool = True
    schema_file: str = "report.schema.json"


@dataclass(frozen=True)
class AppConfig:
    """Top-level application configuration."""

    env: str
    paths: PathsConfig
    classifier: ClassifierConfig
    sentiment: SentimentConfig
    batch: BatchConfig
    analytics: AnalyticsConfig
    logging: LoggingConfig
    validation: ValidationConfig
    taxonomy: Taxonomy
    columns: dict[str, list[str]] = field(default_factory=dict)


def detect_env(cli_env: str | None = None) -> str:
    """Detect the runtime environment.

    Priority:
      1. Explicit CLI flag
      2. COMPLAINTS_ENV environment variable
      3. Default to 'dev'
    """
    env = cli_env or os.environ.get(ENV_VAR, "dev")
    if env not in VALID_ENVS:
        raise ValueError(f"Invalid environment '{env}'. Must be one of {VALID_ENVS}")
    return env


def _load_yaml(path: Path) -> dict[str, Any]:
    """Load a YAML file and return its contents as a dict."""
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    with open(path, encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def taxonomy_path(name_or_path: str, config_dir: Path) -> Path:
    """Resolve a taxonomy name (file stem) or an explicit YAML path."""
    candidate = Path(name_or_path)
    if candidate.suffix in (".yaml", ".yml"):
        return candidate if candidate.is_absolute() else (Path.cwd() / candidate)
    return config_dir / "taxonomies" / f"{name_or_path}.yaml"


def _load_columns(raw: Any) -> dict[str, list[str]]:
    if not isinstance(raw, dict):
        return {}
    return {str(k): [str(v) for v in (vals or [])] for k, vals in raw.items()}


def load_config(
    env: str | None = None,
    config_dir: Path | None = None,
    taxonomy: str | None = None,
) -> AppConfig:
    """Load and parse the YAML config for the given environment.

    Args:
        env: The environment name (dev/staging/prod). Auto-detected if None.
        config_dir: Override the config directory path.
        taxonomy: Taxonomy name or YAML path overriding the configured one.

    Returns:
        Fully resolved AppConfig instance.

    Raises:
        FileNotFoundError: Config or taxonomy file missing.
        TaxonomyError: The taxonomy is structurally invalid.
    """
    resolved_env = detect_env(env)
    resolved_config_dir = config_dir or PROJECT_ROOT / "config"
    config_path = resolved_config_dir / f"complaints.{resolved_env}.yaml"

    raw = _load_yaml(config_path)

    paths_raw = raw.get("paths", {})
    paths = PathsConfig(
        input_file=paths_raw.get("input_file", "data/Twitter - Next.xlsx"),
        output_dir=paths_raw.get("output_dir", "output"),
        schemas_dir=paths_raw.get("schemas_dir", "config/schemas"),
    )

    classifier_raw = raw.get("classifier", {})
    classifier = ClassifierConfig(
        taxonomy=taxonomy or classifier_raw.get("taxonomy", "retail_v3"),
        use_sheet_labels=classifier_raw.get("use_sheet_labels", False),
    )

    sentiment_raw = raw.get("sentiment", {})
    sentiment = SentimentConfig(
        positive_threshold=sentiment_raw.get("positive_threshold", 1),
        negative_threshold=sentiment_raw.get("negative_threshold", -1),
    )

    batch_raw = raw.get("batch", {})
    batch = BatchConfig(
        workers=batch_raw.get("workers", 1),
        chunk_size=batch_raw.get("chunk_size", 500),
    )

    analytics_raw = raw.get("analytics", {})
    analytics = AnalyticsConfig(
        top_keywords=analytics_raw.get("top_keywords", 50),
        top_complaints=analytics_raw.get("top_complaints", 10),
        top_users=analytics_raw.get("top_users", 10),
        top_recommendations=analytics_raw.get("top_recommendations", 3),
    )

    logging_raw = raw.get("logging", {})
    logging_cfg = LoggingConfig(
        level=logging_raw.get("level", "INFO"),
        format=logging_raw.get("format", DEFAULT_LOG_FORMAT),
    )

    validation_raw = raw.get("validation", {})
    validation = ValidationConfig(
        strict=validation_raw.get("strict", True),
        schema_file=validation_raw.get("schema_file", "report.schema.json"),
    )

    loaded_taxonomy = load_taxonomy(taxonomy_path(classifier.taxonomy, resolved_config_dir))

    return AppConfig(
        env=resolved_env,
        paths=paths,
        classifier=classifier,
        sentiment=sentiment,
        batch=batch,
        analytics=analytics,
        logging=logging_cfg,
        validation=validation,
        taxonomy=loaded_taxonomy,
        columns=_load_columns(raw.get("columns")),
    )
