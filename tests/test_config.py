"""Tests for settings loading: defaults, YAML file, environment and overrides."""

from pathlib import Path

import pytest

from csv_query.config import DEFAULTS, Settings, load_config_file, load_settings, settings_from_env
from csv_query.core.errors import ConfigurationError


def test_defaults():
    settings = load_settings({"file": "data.csv"}, environ={})
    assert settings == Settings(file=Path("data.csv"))
    assert settings.delimiter == ","
    assert settings.field_count == 0
    assert settings.has_header is True
    assert settings.numeric is True
    assert settings.port == 8080
    assert settings.shutdown_timeout == 5.0


def test_missing_file():
    with pytest.raises(ConfigurationError, match="no CSV file specified"):
        load_settings({}, environ={})


def test_environment_variables():
    environ = {
        "CSV_FILE": "/tmp/x.csv",
        "CSV_DELIMITER": ";",
        "CSV_FIELD_COUNT": "3",
        "CSV_HAS_HEADER": "false",
        "CSV_HEADER": "a;b;c",
        "CSV_INDICIES": "a",
        "CSV_NUMERIC": "0",
        "CSV_PORT": "9000",
        "HOME": "/root",
    }
    settings = load_settings(environ=environ)
    assert settings.file == Path("/tmp/x.csv")
    assert settings.delimiter == ";"
    assert settings.field_count == 3
    assert settings.has_header is False
    assert settings.header == "a;b;c"
    assert settings.indices == "a"
    assert settings.numeric is False
    assert settings.port == 9000


def test_settings_from_env_ignores_unrelated_variables():
    assert settings_from_env({"PATH": "/bin", "CSV_UNKNOWN": "1", "CSV_FILE": "f"}) == {
        "file": "f"
    }


def test_config_file(tmp_path):
    config = tmp_path / "csv-query.yaml"
    config.write_text("file: data.tsv\ndelimiter: \"\\t\"\nfield-count: 4\n")
    values = load_config_file(config)
    assert values["file"] == "data.tsv"
    assert values["delimiter"] == "\t"
    assert values["field_count"] == 4


def test_precedence(tmp_path):
    config = tmp_path / "csv-query.yaml"
    config.write_text("file: from-file.csv\nport: 7000\ndelimiter: '|'\n")
    settings = load_settings(
        {"port": 6000, "delimiter": None},
        environ={"CSV_FILE": "from-env.csv"},
        config_path=config,
    )
    assert settings.file == Path("from-env.csv")
    assert settings.port == 6000
    assert settings.delimiter == "|"


def test_config_file_unknown_setting(tmp_path):
    config = tmp_path / "csv-query.yaml"
    config.write_text("file: a.csv\nwat: 1\n")
    with pytest.raises(ConfigurationError, match="unknown setting 'wat'"):
        load_config_file(config)


def test_config_file_missing(tmp_path):
    with pytest.raises(ConfigurationError, match="Config file not found"):
        load_config_file(tmp_path / "nope.yaml")


def test_config_file_not_a_mapping(tmp_path):
    config = tmp_path / "csv-query.yaml"
    config.write_text("- a\n- b\n")
    with pytest.raises(ConfigurationError, match="mapping"):
        load_config_file(config)


@pytest.mark.parametrize("delimiter", ["", "ab", '"', "\n"])
def test_invalid_delimiter(delimiter):
    with pytest.raises(ConfigurationError, match="not a valid delimiter"):
        load_settings({"file": "a.csv", "delimiter": delimiter}, environ={})


def test_escaped_tab_delimiter():
    settings = load_settings({"file": "a.csv"}, environ={"CSV_DELIMITER": "\\t"})
    assert settings.delimiter == "\t"


@pytest.mark.parametrize(
    "overrides, message",
    [
        ({"field_count": "three"}, "expected an integer"),
        ({"field_count": -1}, "must not be negative"),
        ({"has_header": "maybe"}, "expected a boolean"),
        ({"port": 70000}, "port out of range"),
        ({"shutdown_timeout": "soon"}, "expected a number"),
    ],
)
def test_invalid_values(overrides, message):
    with pytest.raises(ConfigurationError, match=message):
        load_settings({"file": "a.csv", **overrides}, environ={})


def test_every_default_is_a_settings_field():
    assert set(DEFAULTS) == set(Settings.__dataclass_fields__)
