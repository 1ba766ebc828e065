"""Spreadsheet decoding into raw records.

Reads the first sheet of an Excel workbook (or a CSV export) and yields
one dict per row, keyed by the header row. Empty cells become None so the
normalizer's defaults take over.
"""

from __future__ import annotations

import io
import logging
from pathlib import Path

import pandas as pd

from complaints.record_types import RawRecord

logger = logging.getLogger(__name__)

EXCEL_SUFFIXES = (".xlsx", ".xlsm", ".xls")
CSV_SUFFIXES = (".csv",)


def _frame_to_records(df: pd.DataFrame) -> list[RawRecord]:
    df = df.dropna(how="all")
    df.columns = [str(c).strip() for c in df.columns]
    cleaned = df.astype(object).where(pd.notna(df), None)
    return cleaned.to_dict(orient="records")


def decode_spreadsheet(data: bytes, fmt: str = "xlsx", sheet: int | str = 0) -> list[RawRecord]:
    """Decode spreadsheet bytes.

    Args:
        data: File contents.
        fmt: "xlsx", "xlsm", "xls" or "csv".
        sheet: Sheet index or name for workbooks.

    Returns:
        One raw record per non-empty row.
    """
    suffix = "." + fmt.lower().lstrip(".")
    buffer = io.BytesIO(data)
    if suffix in EXCEL_SUFFIXES:
        df = pd.read_excel(buffer, sheet_name=sheet)
    elif suffix in CSV_SUFFIXES:
        df = pd.read_csv(buffer)
    else:
        raise ValueError(f"Unsupported spreadsheet format '{fmt}'")
    return _frame_to_records(df)


def load_spreadsheet(path: Path | str, sheet: int | str = 0) -> list[RawRecord]:
    """Load raw records from a spreadsheet file on disk."""
    file_path = Path(path)
    if not file_path.exists():
        raise FileNotFoundError(f"Spreadsheet not found: {file_path}")

    suffix = file_path.suffix.lower()
    if suffix in EXCEL_SUFFIXES:
        df = pd.read_excel(file_path, sheet_name=sheet)
    elif suffix in CSV_SUFFIXES:
        df = pd.read_csv(file_path)
    else:
        raise ValueError(f"Unsupported spreadsheet type '{suffix}' for {file_path}")

    records = _frame_to_records(df)
    logger.info("Loaded %d records from %s", len(records), file_path)
    if records:
        logger.debug("Available columns: %s", ", ".join(records[0].keys()))
    return records
