"""
Tests for plughost.plugins.versioning module.
"""

import pytest

from plughost.plugins.versioning import compare_versions, is_valid_version, version_key


class TestCompareVersions:
    """Tests for semantic version ordering."""

    @pytest.mark.parametrize(
        ("v1", "v2", "expected"),
        [
            ("1.0.0", "1.0.0", 0),
            ("1.10.0", "1.9.9", 1),
            ("1.2.0", "1.10.0", -1),
            ("2.0", "1.99.99", 1),
            ("1.2", "1.2.0", 0),
            ("1.2.0.1", "1.2", 1),
        ],
    )
    def test_compare(self, v1: str, v2: str, expected: int) -> None:
        assert compare_versions(v1, v2) == expected

    def test_numeric_not_lexical(self) -> None:
        versions = ["1.2.0", "1.10.0", "1.9.9"]
        assert max(versions, key=version_key) == "1.10.0"
        assert max(versions) == "1.9.9"

    def test_non_numeric_segment_counts_as_zero(self) -> None:
        assert version_key("1.x.3") == (1, 0, 3)


class TestIsValidVersion:
    """Tests for version validation."""

    def test_valid(self) -> None:
        assert is_valid_version("1")
        assert is_valid_version("1.0.0.12")

    def test_invalid(self) -> None:
        assert not is_valid_version("")
        assert not is_valid_version("1.0-beta")
        assert not is_valid_version("v1.0")
