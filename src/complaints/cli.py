"""CLI entry point for the complaint topic pipeline.

Provides three commands:
  - complaints run: Load a spreadsheet, classify every post, write the report
  - complaints classify: Classify a single piece of text
  - complaints validate-taxonomy: Load and validate the configured taxonomy
"""

from __future__ import annotations

import logging
import sys
from datetime import date
from pathlib import Path

import click

from complaints import __version__
from complaints.analytics import build_analytics
from complaints.classifiers.topic import classify_text
from complaints.config import PROJECT_ROOT, AppConfig, load_config
from complaints.loader import load_spreadsheet
from complaints.normalizer import RecordNormalizer
from complaints.output import assemble_report, validate_report, write_report
from complaints.session import ClassificationSession
from complaints.taxonomy import TaxonomyError

logger = logging.getLogger("complaints")

ENV_OPTION = click.option(
    "--env", type=click.Choice(["dev", "staging", "prod"]), default=None,
    help="Environment (default: dev or COMPLAINTS_ENV)",
)
TAXONOMY_OPTION = click.option(
    "--taxonomy", default=None,
    help="Taxonomy name under config/taxonomies/ or a path to a taxonomy YAML file",
)


def _setup_logging(level: str, fmt: str) -> None:
    """Configure logging for the pipeline."""
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format=fmt,
        stream=sys.stderr,
    )


def _resolve_path(path_str: str) -> Path:
    """Resolve a path relative to the project root."""
    p = Path(path_str)
    if p.is_absolute():
        return p
    return (PROJECT_ROOT / p).resolve()


def _load(env: str | None, taxonomy: str | None) -> AppConfig:
    """Load config, turning taxonomy problems into a CLI error."""
    try:
        config = load_config(env=env, taxonomy=taxonomy)
    except TaxonomyError as exc:
        raise click.ClickException(f"Invalid taxonomy: {exc}") from exc
    except (FileNotFoundError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    _setup_logging(config.logging.level, config.logging.format)
    return config


@click.group()
@click.version_option(version=__version__)
def main() -> None:
    """Complaint topic classification pipeline."""


@main.command()
@ENV_OPTION
@TAXONOMY_OPTION
@click.option("--input", "input_file", default=None,
              help="Spreadsheet to classify (.xlsx, .xls or .csv)")
@click.option("--output-dir", default=None, help="Report output directory")
@click.option("--schemas-dir", default=None, help="Schemas directory for validation")
@click.option("--date", "run_date", default=None,
              help="Report date in YYYY-MM-DD format (default: today)")
@click.option("--workers", type=int, default=None,
              help="Worker processes for classification (default: from config)")
@click.option("--use-sheet-labels/--no-sheet-labels", default=None,
              help="Prefer topic/subtopic columns already present in the sheet")
def run(
    env: str | None,
    taxonomy: str | None,
    input_file: str | None,
    output_dir: str | None,
    schemas_dir: str | None,
    run_date: str | None,
    workers: int | None,
    use_sheet_labels: bool | None,
) -> None:
    """Classify a spreadsheet of posts and write the report."""
    config = _load(env, taxonomy)

    if run_date is None:
        run_date = date.today().strftime("%Y-%m-%d")

    resolved_input = Path(input_file) if input_file else _resolve_path(config.paths.input_file)
    resolved_output = output_dir or str(_resolve_path(config.paths.output_dir))
    resolved_schemas = schemas_dir if schemas_dir is not None else str(
        _resolve_path(config.paths.schemas_dir)
    )
    resolved_workers = workers if workers is not None else config.batch.workers
    sheet_labels = (
        use_sheet_labels if use_sheet_labels is not None else config.classifier.use_sheet_labels
    )

    logger.info(
        "Running classification for %s (env=%s, taxonomy=%s)",
        run_date, config.env, config.taxonomy.name,
    )

    # Step 1: Load raw rows
    try:
        raw_records = load_spreadsheet(resolved_input)
    except (FileNotFoundError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc

    # Step 2: Normalize
    normalizer = RecordNormalizer(
        aliases=config.columns,
        positive_threshold=config.sentiment.positive_threshold,
        negative_threshold=config.sentiment.negative_threshold,
    )
    records = normalizer.normalize_all(raw_records)
    logger.info("Normalized %d records", len(records))

    # Step 3: Classify
    session = ClassificationSession(config.taxonomy)
    tree = session.classify_batch(
        records,
        workers=resolved_workers,
        chunk_size=config.batch.chunk_size,
        use_sheet_labels=sheet_labels,
    )

    # Step 4: Aggregate
    analytics = build_analytics(
        tree,
        keyword_limit=config.analytics.top_keywords,
        complaint_limit=config.analytics.top_complaints,
        user_limit=config.analytics.top_users,
        recommendation_limit=config.analytics.top_recommendations,
    )

    # Step 5: Assemble and validate
    report = assemble_report(
        run_date, config.taxonomy, tree, analytics, source=resolved_input.name,
    )
    if not validate_report(report, resolved_schemas, config.validation.schema_file):
        logger.error("Report validation failed!")
        if config.validation.strict:
            raise click.ClickException(
                "Report validation failed. Use non-strict mode to proceed."
            )

    # Step 6: Write
    report_path = write_report(run_date, report, resolved_output)

    click.echo(f"Classified {tree.total} posts for {run_date}")
    for node in tree.topics:
        if node.member_count:
            click.echo(f"  {node.name}: {node.member_count}")
    click.echo(f"  Output: {report_path}")


@main.command()
@click.argument("text")
@ENV_OPTION
@TAXONOMY_OPTION
def classify(text: str, env: str | None, taxonomy: str | None) -> None:
    """Classify a single piece of TEXT and print topic / subtopic."""
    config = _load(env, taxonomy)
    topic, subtopic = classify_text(text, config.taxonomy)
    click.echo(f"{topic} / {subtopic}")


@main.command("validate-taxonomy")
@ENV_OPTION
@TAXONOMY_OPTION
def validate_taxonomy_cmd(env: str | None, taxonomy: str | None) -> None:
    """Load the taxonomy and report its shape."""
    config = _load(env, taxonomy)
    summary = config.taxonomy.summary()
    click.echo(f"Taxonomy {summary['name']} v{summary['version']} is valid")
    click.echo(f"  Topics: {summary['topics']}")
    click.echo(f"  Subtopics: {summary['subtopics']}")
    click.echo(
        f"  Catch-all: {summary['miscellaneous_topic']} / {summary['catch_all_subtopic']}"
    )


if __name__ == "__main__":
    main()
