"""Unit tests for log formatters."""

import json
import logging

from retainer.core.logging import ColoredFormatter, JSONFormatter, get_logger


def _record(**extra) -> logging.LogRecord:
    record = logging.LogRecord("retainer.test", logging.INFO, __file__, 10, "Plugin %s enabled", ("otel",), None)
    for key, value in extra.items():
        setattr(record, key, value)
    return record


def test_json_formatter_includes_extras():
    payload = json.loads(JSONFormatter().format(_record(org_id="org-1", count=2)))

    assert payload["message"] == "Plugin otel enabled"
    assert payload["level"] == "INFO"
    assert payload["org_id"] == "org-1"
    assert payload["count"] == 2
    assert "msg" not in payload


def test_colored_formatter_appends_scalar_extras():
    line = ColoredFormatter(use_colors=False).format(_record(plugin_id="otel", details={"a": 1}))

    assert "Plugin otel enabled" in line
    assert "plugin_id=otel" in line
    assert "details=" not in line


def test_get_logger_namespaces_under_retainer():
    assert get_logger("services.x").name == "retainer.services.x"
    assert get_logger("retainer.core").name == "retainer.core"
