"""Tests for spreadsheet loading."""

from __future__ import annotations

from pathlib import Path

import pandas as pd
import pytest

from complaints.loader import decode_spreadsheet, load_spreadsheet


@pytest.fixture
def csv_file(tmp_path: Path) -> Path:
    """A small CSV export with a blank row and blank cells."""
    path = tmp_path / "posts.csv"
    path.write_text(
        " Tweet ,Likes,Location\n"
        "hello,3,\n"
        ",,\n"
        "bye,,London\n",
        encoding="utf-8",
    )
    return path


@pytest.fixture
def xlsx_file(tmp_path: Path) -> Path:
    """A small workbook written with openpyxl."""
    path = tmp_path / "posts.xlsx"
    pd.DataFrame({
        "Tweet": ["late delivery", "refund pending"],
        "Author": ["ann", "bob"],
        "Likes": [1, 2],
    }).to_excel(path, index=False)
    return path


class TestLoadSpreadsheet:
    def test_csv_rows(self, csv_file: Path) -> None:
        records = load_spreadsheet(csv_file)
        assert len(records) == 2
        assert records[0]["Tweet"] == "hello"
        assert records[0]["Likes"] == 3
        assert records[1]["Location"] == "London"

    def test_blank_cells_become_none(self, csv_file: Path) -> None:
        records = load_spreadsheet(csv_file)
        assert records[0]["Location"] is None
        assert records[1]["Likes"] is None

    def test_column_names_stripped(self, csv_file: Path) -> None:
        assert "Tweet" in load_spreadsheet(csv_file)[0]

    def test_xlsx_rows(self, xlsx_file: Path) -> None:
        records = load_spreadsheet(xlsx_file)
        assert records == [
            {"Tweet": "late delivery", "Author": "ann", "Likes": 1},
            {"Tweet": "refund pending", "Author": "bob", "Likes": 2},
        ]

    def test_missing_file(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError, match="Spreadsheet not found"):
            load_spreadsheet(tmp_path / "nope.xlsx")

    def test_unsupported_suffix(self, tmp_path: Path) -> None:
        path = tmp_path / "posts.txt"
        path.write_text("Tweet\nhello\n", encoding="utf-8")
        with pytest.raises(ValueError, match="Unsupported spreadsheet type"):
            load_spreadsheet(path)


class TestDecodeSpreadsheet:
    def test_xlsx_bytes(self, xlsx_file: Path) -> None:
        records = decode_spreadsheet(xlsx_file.read_bytes(), "xlsx")
        assert [r["Author"] for r in records] == ["ann", "bob"]

    def test_csv_bytes(self, csv_file: Path) -> None:
        records = decode_spreadsheet(csv_file.read_bytes(), ".CSV")
        assert len(records) == 2

    def test_unsupported_format(self) -> None:
        with pytest.raises(ValueError, match="Unsupported spreadsheet format"):
            decode_spreadsheet(b"{}", "json")
