"""Tests for data validation utilities."""

from pathlib import Path

import pandas as pd
import pytest

from magic_cross.utils.validators import (
    ParseError,
    ValidationError,
    validate_file_exists,
    validate_marker_tables,
    validate_row_count,
    validate_strain_order,
    validate_unique,
)


class TestValidateFileExists:
    """Tests for validate_file_exists function."""

    def test_existing_file(self, temp_dir: Path) -> None:
        """Test validation of existing file."""
        test_file = temp_dir / "test.txt"
        test_file.write_text("test")

        assert validate_file_exists(test_file) is True

    def test_nonexistent_file_raises(self) -> None:
        """Test that nonexistent file raises error."""
        with pytest.raises(FileNotFoundError):
            validate_file_exists("/nonexistent/file.txt")

    def test_nonexistent_file_no_raise(self) -> None:
        """Test that nonexistent file returns False when raise_error=False."""
        result = validate_file_exists(
            "/nonexistent/file.txt",
            raise_error=False,
        )
        assert result is False


class TestParseError:
    """Tests for ParseError."""

    def test_message_with_location(self) -> None:
        """Test file name, line and counts appear in the message."""
        error = ParseError("wrong row", "/data/chr1.alleles", 12, expected=19, actual=18)

        assert str(error) == "chr1.alleles:12: wrong row (expected 19, got 18)"
        assert error.path == Path("/data/chr1.alleles")
        assert isinstance(error, ValueError)

    def test_message_without_location(self) -> None:
        """Test a bare message."""
        assert str(ParseError("empty file")) == "empty file"


class TestValidateRowCount:
    """Tests for validate_row_count function."""

    def test_matching(self) -> None:
        """Test equal counts pass."""
        validate_row_count(3, 3, "chr1.alleles")

    def test_mismatch(self) -> None:
        """Test differing counts raise."""
        with pytest.raises(ParseError) as excinfo:
            validate_row_count(2, 3, "chr1.alleles", "marker headers")

        assert excinfo.value.expected == 3
        assert excinfo.value.actual == 2
        assert "marker headers" in str(excinfo.value)


class TestValidateUnique:
    """Tests for validate_unique function."""

    def test_unique(self) -> None:
        """Test unique identifiers pass."""
        validate_unique(pd.Index(["M1", "M2"]), "markers")

    def test_duplicates(self) -> None:
        """Test repeated identifiers are named."""
        with pytest.raises(ValidationError, match="Duplicate markers: M1"):
            validate_unique(["M1", "M2", "M1"], "markers")


class TestValidateStrainOrder:
    """Tests for validate_strain_order function."""

    def test_same_order(self) -> None:
        """Test identical lists pass."""
        validate_strain_order(["Col-0", "Ler-0"], ["Col-0", "Ler-0"], "chr2.alleles")

    def test_reordered(self) -> None:
        """Test a reordered list is rejected."""
        with pytest.raises(ParseError, match="chr2.alleles"):
            validate_strain_order(["Col-0", "Ler-0"], ["Ler-0", "Col-0"], "chr2.alleles")


class TestValidateMarkerTables:
    """Tests for validate_marker_tables function."""

    def test_consistent(self) -> None:
        """Test identical marker sets report nothing missing."""
        missing = validate_marker_tables({"geno": ["M1", "M2"], "pmap": ["M2", "M1"]})
        assert missing == {"geno": [], "pmap": []}

    def test_missing_markers(self) -> None:
        """Test markers absent from one table are reported."""
        missing = validate_marker_tables({"geno": ["M1", "M2"], "pmap": ["M1"]})
        assert missing == {"geno": [], "pmap": ["M2"]}

    def test_duplicates(self) -> None:
        """Test a marker listed twice is rejected."""
        with pytest.raises(ValidationError):
            validate_marker_tables({"gmap": ["M1", "M1"]})
