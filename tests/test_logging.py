"""Tests for redaction and the logging observer."""
import json

from riposte import RequestInfo
from riposte.core.logging import LoggerRegistry, LoggingObserver, ReplyObserver, redact, resolve_level


class ListLogger:
    def __init__(self):
        self.calls = []

    def __getattr__(self, level):
        return lambda event, **fields: self.calls.append((level, event, fields))


class TestRedact:
    def test_nested(self):
        data = {"Authorization": "Bearer x", "items": ({"secret": 1, "keep": 2},)}

        assert redact(data) == {"Authorization": "[REDACTED]", "items": [{"secret": "[REDACTED]", "keep": 2}]}

    def test_depth_limit(self):
        data = {"a": {"b": {"password": "p"}}}

        assert redact(data, max_depth=1) == {"a": {"b": {"password": "p"}}}


class TestResolveLevel:
    def test_aliases(self):
        assert resolve_level("trace") == "debug"
        assert resolve_level("WARN") == "warning"
        assert resolve_level("fatal") == "critical"
        assert resolve_level("info") == "info"

    def test_disabled(self):
        assert resolve_level(None) is None
        assert resolve_level("") is None


class TestLoggingObserver:
    def test_is_a_reply_observer(self):
        assert isinstance(LoggingObserver(), ReplyObserver)

    def test_mutating_request_logs_redacted_headers_and_body(self):
        logger = ListLogger()
        observer = LoggingObserver(logger=logger, request_level="info")
        info = RequestInfo("POST", "http://test/login", {"Authorization": "abc"}, {"password": "p", "user": "u"})

        observer.request("r1", info)

        level, event, fields = logger.calls[0]
        assert (level, event) == ("info", "request_received")
        assert fields["headers"] == {"Authorization": "[REDACTED]"}
        assert fields["body"] == {"password": "[REDACTED]", "user": "u"}

    def test_read_request_omits_body(self):
        logger = ListLogger()
        observer = LoggingObserver(logger=logger)

        observer.request("r1", RequestInfo("GET", "http://test/items", {"Authorization": "abc"}))

        level, _, fields = logger.calls[0]
        assert level == "debug"
        assert "headers" not in fields and "body" not in fields

    def test_reply_body_is_json(self):
        logger = ListLogger()
        observer = LoggingObserver(logger=logger, reply_level="info")

        observer.reply("r1", 200, {"id": "r1", "data": {"a": 1}})

        _, event, fields = logger.calls[0]
        assert event == "reply_sent"
        assert json.loads(fields["body"]) == {"id": "r1", "data": {"a": 1}}

    def test_disabled_category_is_silent(self):
        logger = ListLogger()
        observer = LoggingObserver(logger=logger, reply_level=None, error_level="")

        observer.reply("r1", 200, {})
        observer.error(RuntimeError("x"), "r1")

        assert logger.calls == []

    def test_error(self):
        logger = ListLogger()
        observer = LoggingObserver(logger=logger, error_level="warn")

        observer.error(RuntimeError("x"), "r1")

        assert logger.calls == [
            ("warning", "reply_error", {"reply_id": "r1", "error": "x", "error_type": "RuntimeError"})
        ]

    def test_trace_only_in_debug(self):
        logger = ListLogger()

        LoggingObserver(logger=logger).trace("handle", handler_type="translate")
        LoggingObserver(logger=logger, debug=True).trace("handle", handler_type="translate")

        assert logger.calls == [("debug", "handle", {"handler_type": "translate"})]

    def test_category_loggers_without_custom_logger(self, monkeypatch):
        request_log, reply_log, error_log = ListLogger(), ListLogger(), ListLogger()
        monkeypatch.setattr(
            LoggerRegistry, "_loggers", {"request": request_log, "reply": reply_log, "error": error_log}
        )
        observer = LoggingObserver(request_level="info", reply_level="info")

        observer.request("r1", None)
        observer.reply("r1", 204, None)
        observer.error(RuntimeError("x"), "r1")

        assert [event for _, event, _ in request_log.calls] == ["request_received"]
        assert [event for _, event, _ in reply_log.calls] == ["reply_sent"]
        assert [(level, event) for level, event, _ in error_log.calls] == [("error", "reply_error")]
