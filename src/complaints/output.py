"""Report assembly, validation, and writing.

Assembles the classified topic tree and its aggregates into report.json,
validates it against the report schema, and writes it to the output
directory.
"""

from __future__ import annotations

import json
import logging
from datetime import datetime
from pathlib import Path
from typing import Any

from jsonschema import SchemaError, ValidationError, validate

from complaints.session import ClassificationTree
from complaints.taxonomy import Taxonomy

logger = logging.getLogger(__name__)

REPORT_FILENAME = "report.json"


def assemble_report(
    run_date: str,
    taxonomy: Taxonomy,
    tree: ClassificationTree,
    analytics: dict[str, Any],
    source: str = "",
    include_empty: bool = True,
    generated_at: datetime | None = None,
) -> dict[str, Any]:
    """Assemble the report envelope.

    Args:
        run_date: Report date (YYYY-MM-DD).
        taxonomy: Taxonomy the tree was built with.
        tree: Classified records.
        analytics: Output of analytics.build_analytics.
        source: Name of the spreadsheet the records came from.
        include_empty: Keep topics and subtopics with no members.
        generated_at: Timestamp to stamp; defaults to now.

    Returns:
        Report dict conforming to report.schema.json.
    """
    return {
        "date": run_date,
        "generated_at": (generated_at or datetime.now()).isoformat(timespec="seconds"),
        "source": source,
        "taxonomy": {"name": taxonomy.name, "version": taxonomy.version},
        "record_count": tree.total,
        "topics": tree.to_dict(include_empty=include_empty),
        "analytics": analytics,
    }


def validate_report(
    report: dict[str, Any],
    schemas_dir: str = "",
    schema_file: str = "report.schema.json",
) -> bool:
    """Validate a report against the JSON schema.

    Args:
        report: Report dict to validate.
        schemas_dir: Path to schemas directory. If empty, skips validation.
        schema_file: Schema filename inside schemas_dir.

    Returns:
        True if valid (or validation skipped), False otherwise.
    """
    if not schemas_dir:
        logger.warning("No schemas directory provided; skipping validation.")
        return True

    schema_path = Path(schemas_dir) / schema_file
    if not schema_path.exists():
        logger.warning("Schema file not found: %s; skipping validation.", schema_path)
        return True

    try:
        with open(schema_path, encoding="utf-8") as f:
            schema = json.load(f)
        validate(instance=report, schema=schema)
    except ValidationError as exc:
        path_str = " > ".join(str(p) for p in exc.absolute_path)
        logger.error("Report validation failed at %s: %s", path_str, exc.message)
        return False
    except (SchemaError, json.JSONDecodeError, OSError) as exc:
        logger.error("Validation error: %s", exc)
        return False

    logger.info("Report validation passed.")
    return True


def write_report(run_date: str, report: dict[str, Any], output_dir: str) -> Path:
    """Write report.json for a date, plus a copy under latest/.

    Creates {output_dir}/{run_date}/report.json and
    {output_dir}/latest/report.json.

    Returns:
        Path to the dated file.
    """
    paths = [Path(output_dir) / run_date, Path(output_dir) / "latest"]
    for out_path in paths:
        out_path.mkdir(parents=True, exist_ok=True)
        with open(out_path / REPORT_FILENAME, "w", encoding="utf-8") as f:
            json.dump(report, f, ensure_ascii=False, indent=2)

    file_path = paths[0] / REPORT_FILENAME
    logger.info("Wrote report to %s", file_path)
    return file_path
