"""
Unit Tests for the shared table helpers.

Test Aspects Covered:
    ✅ Reading: header/value trimming, encoding fallback, missing files
    ✅ Column resolution: candidate names, case and spacing
    ✅ Schema: renaming, per-row type checks, missing columns
"""

from __future__ import annotations

from pathlib import Path

import numpy as np
import pandas as pd
import pytest

from tableio import SchemaError, apply_schema, format_postcode, pick_col, read_table


class TestReadTable:
    """Test cases for read_table."""

    def test_trims_headers_and_values(self, tmp_path: Path) -> None:
        """
        SCENARIO: Header and cells carry stray spaces
        EXPECTED: Both are stripped, values stay strings
        """
        path = tmp_path / "t.csv"
        path.write_text(" Code , Size \n A1 , 0012 \n", encoding="utf-8")

        df = read_table(path)

        assert list(df.columns) == ["Code", "Size"]
        assert df.loc[0, "Code"] == "A1"
        assert df.loc[0, "Size"] == "0012"

    def test_padded_codes_stripped(self, tmp_path: Path) -> None:
        """
        SCENARIO: Code columns padded with spaces on either side
        EXPECTED: Codes come back bare
        """
        path = tmp_path / "t.csv"
        path.write_text("PracticeCode,HB\n 10001 , S08000024\n10002,S08000031 \n", encoding="utf-8")

        df = read_table(path)

        assert df["PracticeCode"].tolist() == ["10001", "10002"]
        assert df["HB"].tolist() == ["S08000024", "S08000031"]

    def test_latin1_fallback(self, tmp_path: Path) -> None:
        """
        SCENARIO: File is latin1 encoded
        EXPECTED: Read succeeds through the fallback
        """
        path = tmp_path / "t.csv"
        path.write_bytes("Name\nSt Andr\xe9 Surgery\n".encode("latin1"))

        df = read_table(path)

        assert df.loc[0, "Name"] == "St Andr\xe9 Surgery"

    def test_missing_file_raises(self, tmp_path: Path) -> None:
        """
        SCENARIO: File does not exist
        EXPECTED: FileNotFoundError
        """
        with pytest.raises(FileNotFoundError):
            read_table(tmp_path / "nope.csv")


class TestPickCol:
    """Test cases for pick_col."""

    def test_case_and_space_insensitive(self) -> None:
        df = pd.DataFrame(columns=["Practice  List Size", "HBT"])

        assert pick_col(df, ["practice list size"]) == "Practice  List Size"
        assert pick_col(df, ["HB", "hbt"]) == "HBT"

    def test_not_found(self) -> None:
        df = pd.DataFrame(columns=["A"])

        assert pick_col(df, ["B", "C"]) is None


class TestFormatPostcode:
    """Test cases for format_postcode."""

    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("eh11bb", "EH1 1BB"),
            ("G2  2AA", "G2 2AA"),
            ("AB10 1XG", "AB10 1XG"),
        ],
    )
    def test_normalizes(self, raw: str, expected: str) -> None:
        assert format_postcode(raw) == expected

    def test_non_string_is_nan(self) -> None:
        assert format_postcode(None) is np.nan
        assert format_postcode("   ") is np.nan


class TestApplySchema:
    """Test cases for apply_schema."""

    SCHEMA = {
        "Code": (["PracticeCode", "GPPractice"], "str"),
        "Items": (["NumberOfPaidItems"], "non_negative_int"),
        "Size": (["ListSize"], "positive_int"),
        "Decile": (["SIMD Decile"], "decile"),
    }

    def test_renames_and_keeps_schema_columns(self) -> None:
        """
        SCENARIO: Source uses alternative names and has extra columns
        EXPECTED: Canonical names only, in schema order
        """
        raw = pd.DataFrame(
            {
                "Extra": ["x"],
                "SIMD Decile": ["4"],
                "ListSize": ["1,200"],
                "NumberOfPaidItems": ["0"],
                "GPPractice": ["10001"],
            }
        )

        out = apply_schema(raw, self.SCHEMA, "test")

        assert list(out.columns) == ["Code", "Items", "Size", "Decile"]
        assert out.loc[0, "Size"] == 1200
        assert out.loc[0, "Items"] == 0
        assert str(out["Decile"].dtype) == "Int64"

    def test_bad_rows_skipped(self) -> None:
        """
        SCENARIO: Non-numeric, fractional, negative and out-of-range values
        EXPECTED: Only the clean row survives
        """
        raw = pd.DataFrame(
            {
                "PracticeCode": ["ok", "text", "frac", "neg", "decile", "zero"],
                "NumberOfPaidItems": ["5", "five", "2.5", "-1", "3", "3"],
                "ListSize": ["10", "10", "10", "10", "10", "0"],
                "SIMD Decile": ["1", "1", "1", "1", "11", "1"],
            }
        )

        out = apply_schema(raw, self.SCHEMA, "test")

        assert out["Code"].tolist() == ["ok"]

    def test_missing_column_raises(self) -> None:
        """
        SCENARIO: A required column is absent
        EXPECTED: SchemaError naming it
        """
        raw = pd.DataFrame({"PracticeCode": ["a"], "ListSize": ["1"], "SIMD Decile": ["1"]})

        with pytest.raises(SchemaError, match="Items"):
            apply_schema(raw, self.SCHEMA, "test")

    def test_blank_id_rows_skipped(self) -> None:
        """
        SCENARIO: Join key column holds a blank and a missing value
        EXPECTED: Those rows are dropped, the rest keep their codes
        """
        schema = {"Code": (["PracticeCode"], "id")}
        raw = pd.DataFrame({"PracticeCode": ["10001", "", None, "10002"]})

        out = apply_schema(raw, schema, "test")

        assert out["Code"].tolist() == ["10001", "10002"]
