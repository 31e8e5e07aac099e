"""Tests for configuration, naming conventions and results."""

from __future__ import annotations

from datetime import datetime, timedelta

import pytest

from docmigrator import MigrationConfig, MigrationResult, NamingConvention


class TestNamingConvention:
    """Tests for NamingConvention enum."""

    @pytest.mark.parametrize(
        "convention, expected",
        [
            (NamingConvention.CAMEL_CASE, "runsOn"),
            (NamingConvention.PASCAL_CASE, "RunsOn"),
            (NamingConvention.SNAKE_CASE, "runs_on"),
            (NamingConvention.KEBAB_CASE, "runs-on"),
        ],
    )
    def test_apply(self, convention: NamingConvention, expected: str) -> None:
        """Test rendering field names."""
        assert convention.apply("runs_on") == expected

    def test_single_word(self) -> None:
        """Test names without separators."""
        assert NamingConvention.CAMEL_CASE.apply("foo") == "foo"
        assert NamingConvention.PASCAL_CASE.apply("foo") == "Foo"

    @pytest.mark.parametrize(
        "value, expected",
        [
            ("camel", NamingConvention.CAMEL_CASE),
            ("camelCase", NamingConvention.CAMEL_CASE),
            ("snake_case", NamingConvention.SNAKE_CASE),
            ("underscored", NamingConvention.SNAKE_CASE),
            ("KEBAB", NamingConvention.KEBAB_CASE),
            ("PascalCase", NamingConvention.PASCAL_CASE),
        ],
    )
    def test_from_string(self, value: str, expected: NamingConvention) -> None:
        """Test parsing convention names."""
        assert NamingConvention.from_string(value) is expected

    def test_from_string_unknown(self) -> None:
        """Test unknown convention names."""
        with pytest.raises(ValueError):
            NamingConvention.from_string("screaming")


class TestMigrationConfig:
    """Tests for MigrationConfig class."""

    def test_defaults(self) -> None:
        """Test default configuration."""
        config = MigrationConfig()

        assert config.resolved_version_field == "schemaVersion"
        assert config.naming_convention is NamingConvention.CAMEL_CASE
        assert config.round_trip_conversion is False

    def test_version_field_follows_convention(self) -> None:
        """Test the version key is rendered in the convention."""
        config = MigrationConfig(naming_convention=NamingConvention.SNAKE_CASE)

        assert config.resolved_version_field == "schema_version"

    def test_explicit_version_field(self) -> None:
        """Test an explicit version key wins."""
        config = MigrationConfig(version_field="v")

        assert config.resolved_version_field == "v"

    def test_from_dict(self) -> None:
        """Test creating config from a mapping."""
        config = MigrationConfig.from_dict(
            {"naming_convention": "kebab", "round_trip_conversion": "yes"}
        )

        assert config.naming_convention is NamingConvention.KEBAB_CASE
        assert config.round_trip_conversion is True
        assert config.resolved_version_field == "schema-version"

    def test_from_env(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test creating config from environment variables."""
        monkeypatch.setenv("DOCMIGRATOR_VERSION_FIELD", "_v")
        monkeypatch.setenv("DOCMIGRATOR_NAMING_CONVENTION", "snake")
        monkeypatch.setenv("DOCMIGRATOR_ROUND_TRIP", "1")

        config = MigrationConfig.from_env()

        assert config.version_field == "_v"
        assert config.naming_convention is NamingConvention.SNAKE_CASE
        assert config.round_trip_conversion is True

    def test_from_env_unset(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test unset variables keep defaults."""
        for name in ("VERSION_FIELD", "NAMING_CONVENTION", "ROUND_TRIP"):
            monkeypatch.delenv(f"APP_{name}", raising=False)

        assert MigrationConfig.from_env(prefix="APP_") == MigrationConfig()


class TestMigrationResult:
    """Tests for MigrationResult class."""

    def test_duration(self) -> None:
        """Test duration calculation."""
        start = datetime(2025, 1, 1)
        result = MigrationResult(start_time=start, end_time=start + timedelta(seconds=2))

        assert result.duration_seconds == 2.0

    def test_unfinished(self) -> None:
        """Test an unfinished result has no duration."""
        result = MigrationResult(start_time=datetime.now())

        assert result.duration_seconds == 0.0
        assert result.migrated is False

    def test_to_dict(self) -> None:
        """Test conversion to dictionary."""
        start = datetime(2025, 1, 1)
        result = MigrationResult(
            start_time=start,
            end_time=start,
            from_version=0,
            to_version=2,
            app_schema_version=2,
            steps_applied=[0, 1],
        )

        data = result.to_dict()

        assert data["start_time"] == "2025-01-01T00:00:00"
        assert data["steps_applied"] == [0, 1]
        assert data["forward_compatible"] is False
        assert result.migrated is True
