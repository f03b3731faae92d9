"""
Tests for the cache inspection CLI.
"""

import logging

import pytest
from typer.testing import CliRunner

from ctrequest import __version__
from ctrequest.cli.main import app
from ctrequest.core.cache import FileCacheBackend, derive_key

runner = CliRunner()

WIDE = {"COLUMNS": "200"}


@pytest.fixture(autouse=True)
def reset_logging():
    yield
    logger = logging.getLogger("ctrequest")
    logger.handlers.clear()
    logger.setLevel(logging.NOTSET)


@pytest.fixture
def populated(cache_dir):
    backend = FileCacheBackend(cache_dir)
    backend.put("twitter", [{"q": "apple"}], {"data": ["a"]})
    backend.put("weather", ["tms_01"], {"output": "tms_01"}, record_expiry=3600)
    return backend


def test_version():
    result = runner.invoke(app, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_key():
    result = runner.invoke(app, ["cache", "key", '["tms_01"]', "--scope", "twitter"])

    assert result.exit_code == 0
    assert result.output.strip() == derive_key("twitter", ["tms_01"])


def test_key_rejects_invalid_json():
    result = runner.invoke(app, ["cache", "key", "[unclosed"])

    assert result.exit_code == 1


def test_key_requires_array():
    result = runner.invoke(app, ["cache", "key", '{"q": "apple"}'])

    assert result.exit_code == 1


def test_list(populated, cache_dir):
    result = runner.invoke(app, ["cache", "list", str(cache_dir)], env=WIDE)

    assert result.exit_code == 0
    assert "twitter" in result.output
    assert "weather" in result.output


def test_list_filters_scope(populated, cache_dir):
    result = runner.invoke(app, ["cache", "list", str(cache_dir), "--scope", "weather"], env=WIDE)

    assert result.exit_code == 0
    assert "weather" in result.output
    assert "twitter" not in result.output


def test_list_empty(cache_dir):
    cache_dir.mkdir()

    result = runner.invoke(app, ["cache", "list", str(cache_dir)])

    assert result.exit_code == 0
    assert "No cached records" in result.output


def test_list_missing_directory(tmp_path):
    result = runner.invoke(app, ["cache", "list", str(tmp_path / "nope")])

    assert result.exit_code == 1


def test_show(populated, cache_dir):
    key = derive_key("weather", ["tms_01"])

    result = runner.invoke(app, ["cache", "show", str(cache_dir), key], env=WIDE)

    assert result.exit_code == 0
    assert "tms_01" in result.output
    assert "3600" in result.output


def test_show_unknown_key(populated, cache_dir):
    result = runner.invoke(app, ["cache", "show", str(cache_dir), "0" * 32])

    assert result.exit_code == 1


def test_stats(populated, cache_dir):
    (cache_dir / "broken.json").write_text("nope", encoding="utf-8")

    result = runner.invoke(app, ["cache", "stats", str(cache_dir)], env=WIDE)

    assert result.exit_code == 0
    assert "Files" in result.output
    assert "Unreadable" in result.output
    assert "3" in result.output
