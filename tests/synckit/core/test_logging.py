"""Tests for the structured logging facade."""

from __future__ import annotations

import json

import pytest

from synckit.core.logging import LogConfig, LogEvents, LogFormat, UnifiedLogger


@pytest.mark.unit
def test_log_event_identifiers_are_dotted():
    assert LogEvents.SYNC_OPERATION_START.value == "sync.operation.start"
    assert str(LogEvents.HTTP_PAGINATOR_PAGE_FETCHED) == "http.paginator.page.fetched"
    assert LogEvents.CLI_COMMAND_ERROR == "cli.command.error"


@pytest.mark.unit
def test_json_output_redacts_sensitive_fields(capsys):
    UnifiedLogger.configure(LogConfig(level="INFO", format=LogFormat.JSON))

    UnifiedLogger.get("synckit.tests").info(
        LogEvents.SYNC_OPERATION_FINISH,
        component="tests",
        password="hunter2",
        count=3,
    )

    record = json.loads(capsys.readouterr().err.strip().splitlines()[-1])
    assert record["message"] == "sync.operation.finish"
    assert record["component"] == "tests"
    assert record["password"] == "***REDACTED***"
    assert record["count"] == 3
    assert record["level"] == "info"


@pytest.mark.unit
def test_level_filter_drops_debug(capsys):
    UnifiedLogger.configure(LogConfig(level="INFO", format=LogFormat.KEY_VALUE))

    log = UnifiedLogger.get("synckit.tests")
    log.debug(LogEvents.SYNC_STORE_REGISTERED, component="tests")
    log.warning(LogEvents.SYNC_FILTER_IGNORED, component="tests")

    err = capsys.readouterr().err
    assert "sync.store.registered" not in err
    assert "message='sync.filter.ignored'" in err
    assert "component='tests'" in err


@pytest.mark.unit
def test_scoped_context_is_restored(capsys):
    UnifiedLogger.configure(LogConfig(level="INFO", format=LogFormat.JSON))
    UnifiedLogger.bind(provider="outer")

    with UnifiedLogger.scoped(provider="inner"):
        UnifiedLogger.get("synckit.tests").info("inside")
    UnifiedLogger.get("synckit.tests").info("outside")

    inside, outside = (json.loads(line) for line in capsys.readouterr().err.strip().splitlines()[-2:])
    assert inside["provider"] == "inner"
    assert outside["provider"] == "outer"


@pytest.mark.unit
def test_unknown_level_is_rejected():
    with pytest.raises(ValueError, match="Unsupported log level"):
        UnifiedLogger.configure(LogConfig(level="CHATTY"))
