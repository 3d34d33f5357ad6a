"""
tests/test_db_config.py

Tests for database URL resolution and env-file loading.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest

from db import config as db_config

URL_VARS = (
    "METRICS_DATABASE_URL",
    "DATABASE_URL",
    "CLOUD_DATABASE_URL",
    "LOCAL_DATABASE_URL",
    "ENVIRONMENT",
)


@pytest.fixture()
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in URL_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(db_config, "load_env_files", lambda root=None: None)
    return monkeypatch


class TestNormalizePostgresUrl:
    @pytest.mark.parametrize(
        "url",
        ["postgres://u:p@db:5432/metrics", "postgresql://u:p@db:5432/metrics"],
    )
    def test_rewrites_to_psycopg(self, url: str) -> None:
        assert db_config.normalize_postgres_url(url) == "postgresql+psycopg://u:p@db:5432/metrics"

    def test_leaves_explicit_driver_alone(self) -> None:
        url = "postgresql+psycopg://u:p@db/metrics"
        assert db_config.normalize_postgres_url(url) == url

    def test_leaves_other_schemes_alone(self) -> None:
        assert db_config.normalize_postgres_url("sqlite:///metrics.db") == "sqlite:///metrics.db"


class TestResolveDatabaseUrl:
    def test_metrics_url_wins(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("METRICS_DATABASE_URL", "postgres://metrics")
        clean_env.setenv("DATABASE_URL", "postgres://shared")
        assert db_config.resolve_database_url() == "postgresql+psycopg://metrics"

    def test_cloud_url_needs_cloud_environment(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("CLOUD_DATABASE_URL", "postgres://cloud")
        clean_env.setenv("LOCAL_DATABASE_URL", "postgres://local")
        assert db_config.resolve_database_url() == "postgresql+psycopg://local"

        clean_env.setenv("ENVIRONMENT", "Production")
        assert db_config.resolve_database_url() == "postgresql+psycopg://cloud"

    def test_blank_values_are_skipped(self, clean_env: pytest.MonkeyPatch) -> None:
        clean_env.setenv("DATABASE_URL", "   ")
        clean_env.setenv("LOCAL_DATABASE_URL", "postgres://local")
        assert db_config.resolve_database_url() == "postgresql+psycopg://local"

    def test_nothing_configured(self, clean_env: pytest.MonkeyPatch) -> None:
        with pytest.raises(RuntimeError, match="LOCAL_DATABASE_URL"):
            db_config.resolve_database_url()


class TestEnvFiles:
    def test_parse_skips_comments_and_strips_quotes(self, tmp_path: Path) -> None:
        path = tmp_path / ".env"
        path.write_text(
            "# local dev\n\nDATABASE_URL='postgres://x'\nJUNK\n SQL_ECHO = \"true\" \n",
            encoding="utf-8",
        )
        assert db_config.parse_env_file(path) == {
            "DATABASE_URL": "postgres://x",
            "SQL_ECHO": "true",
        }

    def test_process_env_wins_and_local_file_fills_gaps(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("METRICS_TEST_A", "from-process")
        monkeypatch.delenv("METRICS_TEST_B", raising=False)
        (tmp_path / ".env").write_text("METRICS_TEST_A=from-file\n", encoding="utf-8")
        (tmp_path / ".env.local").write_text("METRICS_TEST_B=from-local\n", encoding="utf-8")

        db_config.load_env_files(tmp_path)

        assert os.environ["METRICS_TEST_A"] == "from-process"
        assert os.environ["METRICS_TEST_B"] == "from-local"
