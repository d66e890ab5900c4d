import logging

import pytest

from polyscaffold.foundation.logging_utils import (
    LOG_FORMAT,
    close_logger,
    load_logging_config,
    open_run_logger,
    parse_bool,
    setup_operational_logger,
)


def test_operational_logger_writes_debug_to_file(tmp_path):
    logger, log_file = setup_operational_logger(str(tmp_path / "logs"), "unit_run", level=logging.WARNING)
    try:
        logger.debug("Script output: → done")
        logger.info("Stage: projectDir/create-workspace")
    finally:
        close_logger(logger)

    assert log_file == str(tmp_path / "logs" / "unit_run_oplog.log")
    content = (tmp_path / "logs" / "unit_run_oplog.log").read_text(encoding="utf-8")
    assert "| DEBUG | Script output: → done" in content
    assert "| INFO | Stage: projectDir/create-workspace" in content
    assert logger.handlers == []
    assert logger.propagate is False


def test_stream_only_logger_has_no_file(capsys):
    logger, log_file = setup_operational_logger(None, "stream_only")
    try:
        logger.info("hello")
    finally:
        close_logger(logger)

    assert log_file is None
    assert "| INFO | hello" in capsys.readouterr().err


def test_load_logging_config_from_environment(tmp_path):
    config = load_logging_config(
        {
            "POLYSCAFFOLD_LOG_LEVEL": "Debug",
            "POLYSCAFFOLD_LOG_FILE": "no",
            "POLYSCAFFOLD_LOG_DIR": str(tmp_path),
        }
    )

    assert config.level == logging.DEBUG
    assert config.enable_file is False
    assert config.log_dir == str(tmp_path)

    defaults = load_logging_config({})
    assert (defaults.level, defaults.enable_file, defaults.log_dir) == (logging.INFO, True, "logs")


def test_invalid_log_settings_raise():
    with pytest.raises(ValueError, match="Invalid POLYSCAFFOLD_LOG_LEVEL"):
        load_logging_config({"POLYSCAFFOLD_LOG_LEVEL": "verbose"})
    with pytest.raises(ValueError, match="Invalid boolean for POLYSCAFFOLD_LOG_FILE"):
        load_logging_config({"POLYSCAFFOLD_LOG_FILE": "maybe"})


def test_parse_bool_is_strict():
    assert parse_bool(" TRUE ", "x") is True
    assert parse_bool(0, "x") is False
    with pytest.raises(ValueError):
        parse_bool(2, "x")


def test_open_run_logger_respects_disabled_file(tmp_path):
    logger, log_file = open_run_logger(
        "env_run", {"POLYSCAFFOLD_LOG_FILE": "false", "POLYSCAFFOLD_LOG_DIR": str(tmp_path)}
    )
    close_logger(logger)

    assert log_file is None
    assert list(tmp_path.iterdir()) == []


def test_log_format_matches_pipe_layout():
    assert LOG_FORMAT == "%(asctime)s | %(levelname)s | %(message)s"
