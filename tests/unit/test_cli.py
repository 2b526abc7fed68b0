"""
Unit Tests - Command Line Entry Point, Settings and Errors
"""
import pytest
from datetime import date, datetime, timezone

from pydantic import ValidationError

from retail_silver import main as cli
from retail_silver.config import PipelineSettings, Settings
from retail_silver.config.settings import DatabaseSettings
from retail_silver.exceptions import (
    EntityLoadError,
    PipelineError,
    PipelineRunError,
    SinkWriteError,
)
from retail_silver.pipeline.runner import PipelineRunResult, RunStatus


def _result(status: RunStatus, failed_entity=None) -> PipelineRunResult:
    return PipelineRunResult(
        status=status,
        started_at=datetime.now(timezone.utc),
        processing_date=date(2024, 1, 31),
        failed_entity=failed_entity,
    )


class TestArgumentParser:
    """Tests for the CLI arguments"""

    def test_defaults(self):
        args = cli.build_parser().parse_args([])

        assert args.entities is None
        assert args.processing_date is None
        assert not args.init_db

    def test_entities_and_date(self):
        args = cli.build_parser().parse_args(
            ["--entities", "sales", "products", "--processing-date", "2024-01-31", "--init-db"]
        )

        assert args.entities == ["sales", "products"]
        assert args.processing_date == date(2024, 1, 31)
        assert args.init_db

    def test_unknown_entity(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["--entities", "customers"])

    def test_bad_date(self):
        with pytest.raises(SystemExit):
            cli.build_parser().parse_args(["--processing-date", "31/01/2024"])


class TestMain:
    """Tests for main()"""

    def test_success_exit_code(self, monkeypatch):
        calls = {}

        async def fake_run(entities=None, today=None, create_tables=False):
            calls.update(entities=entities, today=today, create_tables=create_tables)
            return _result(RunStatus.SUCCESS)

        monkeypatch.setattr(cli, "run_full_pipeline", fake_run)

        code = cli.main(["--entities", "products", "--processing-date", "2024-01-31", "--log-format", "console"])

        assert code == 0
        assert calls == {"entities": ["products"], "today": date(2024, 1, 31), "create_tables": False}

    def test_failure_exit_code(self, monkeypatch):
        async def fake_run(entities=None, today=None, create_tables=False):
            raise PipelineRunError(_result(RunStatus.FAILED, failed_entity="sales"))

        monkeypatch.setattr(cli, "run_full_pipeline", fake_run)

        assert cli.main(["--log-format", "console"]) == 1


class TestSettings:
    """Tests for configuration"""

    def test_pipeline_defaults(self):
        settings = PipelineSettings()

        assert settings.date_floor == date(2000, 1, 1)
        assert settings.batch_size == 10000
        assert settings.max_workers == 1
        assert settings.enable_quality_checks

    def test_sizes_must_be_positive(self):
        with pytest.raises(ValidationError):
            PipelineSettings(batch_size=0)

    def test_env_override(self, monkeypatch):
        monkeypatch.setenv("PIPELINE_DATE_FLOOR", "2010-01-01")
        monkeypatch.setenv("PIPELINE_MAX_WORKERS", "4")

        settings = PipelineSettings()

        assert settings.date_floor == date(2010, 1, 1)
        assert settings.max_workers == 4

    def test_database_url_override(self, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", "sqlite+aiosqlite:///warehouse.db")

        assert DatabaseSettings().async_url == "sqlite+aiosqlite:///warehouse.db"

    def test_database_url_from_parts(self, monkeypatch):
        monkeypatch.delenv("DATABASE_URL", raising=False)
        monkeypatch.setenv("POSTGRES_HOST", "warehouse")
        monkeypatch.setenv("POSTGRES_DB", "retail")

        url = DatabaseSettings().async_url

        assert url.startswith("postgresql+asyncpg://")
        assert url.endswith("@warehouse:5432/retail")

    def test_invalid_environment(self, monkeypatch):
        monkeypatch.setenv("APP_ENV", "qa")

        with pytest.raises(ValidationError):
            Settings()


class TestExceptions:
    """Tests for the error hierarchy"""

    def test_hierarchy(self):
        assert issubclass(SinkWriteError, PipelineError)
        assert issubclass(PipelineRunError, PipelineError)

    def test_message_includes_entity_and_cause(self):
        error = EntityLoadError("sales", cause=ValueError("bad row"))

        assert str(error) == "[sales] Entity load failed | Caused by: ValueError: bad row"
        assert error.__cause__ is error.cause

    def test_to_dict(self):
        error = SinkWriteError("suppliers", message="constraint violated")

        assert error.to_dict() == {
            "error_type": "SinkWriteError",
            "message": "constraint violated",
            "entity": "suppliers",
            "cause": None,
        }

    def test_run_error_carries_result(self):
        result = _result(RunStatus.FAILED, failed_entity="sales")
        error = PipelineRunError(result, cause=SinkWriteError("sales"))

        assert error.result is result
        assert error.entity == "sales"
        assert "sales" in str(error)
