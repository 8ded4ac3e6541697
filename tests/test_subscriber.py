"""Tests for the notification-driven log lines."""

import json
from unittest import mock

import pytest

from stasher.formatter import LogEvent
from stasher.scope import CurrentScope
from stasher.subscriber import LogSubscriber, channels_for


@pytest.fixture
def subscriber(pipeline):
    return LogSubscriber(pipeline)


class TestStartProcessing:
    @pytest.fixture
    def event(self, make_event, request_payload):
        return make_event("start_processing.controller", request_payload)

    def test_calls_extractors(self, subscriber, event, request_payload):
        with mock.patch.object(subscriber, "extract_request", return_value={"request": True}) as req, \
                mock.patch.object(subscriber, "extract_current_scope", return_value={"custom": True}) as scope:
            subscriber.start_processing(event)
        req.assert_called_once_with(request_payload)
        scope.assert_called_once_with()

    def test_logs_the_event(self, subscriber, event, sink):
        subscriber.start_processing(event)
        expected = (
            '{"@source":"source","tags":["request"],"@fields":{"method":"GET","ip":"127.0.0.1",'
            '"params":{"foo":"bar"},"path":"/home","format":"application/json","controller":"home",'
            '"action":"index"},"@timestamp":"2014-01-01T00:00:00.000Z","@version":"1"}\n'
        )
        assert sink.messages == [expected]

    def test_does_not_touch_scope(self, subscriber, event):
        CurrentScope["uuid"] = "abc"
        subscriber.start_processing(event)
        assert CurrentScope.fields() == {"uuid": "abc"}

    def test_includes_scope_fields(self, subscriber, event, sink):
        CurrentScope["uuid"] = "abc"
        subscriber.start_processing(event)
        assert json.loads(sink.messages[0])["@fields"]["uuid"] == "abc"


class TestSql:
    @pytest.mark.parametrize("name", ["SCHEMA", "", "ActiveRecord::SessionStore"])
    def test_housekeeping_queries_not_logged(self, subscriber, make_event, sql_payload, sink, name):
        sql_payload["name"] = name
        subscriber.sql(make_event("sql.database", sql_payload))
        assert sink.messages == []

    def test_calls_extractors(self, subscriber, make_event, sql_payload):
        with mock.patch.object(subscriber, "extract_sql", return_value={"sql": True}) as sql, \
                mock.patch.object(subscriber, "extract_current_scope", return_value={"custom": True}) as scope:
            subscriber.sql(make_event("sql.database", sql_payload))
        sql.assert_called_once_with(sql_payload, 0.0)
        scope.assert_called_once_with()

    def test_logs_the_event(self, subscriber, make_event, sql_payload, sink):
        subscriber.sql(make_event("sql.database", sql_payload))
        assert json.loads(sink.messages[0]) == {
            "@source": "source",
            "tags": ["sql"],
            "@fields": {"name": "User Load", "sql": sql_payload["sql"], "duration": 0.0},
            "@timestamp": "2014-01-01T00:00:00.000Z",
            "@version": "1",
        }


class TestProcessAction:
    @pytest.fixture
    def event(self, make_event, request_payload):
        return make_event("process_action.controller", request_payload)

    def test_calls_extractors(self, subscriber, event, request_payload):
        with mock.patch.object(subscriber, "extract_request", return_value={"request": True}) as req, \
                mock.patch.object(subscriber, "extract_status", return_value={"status": True}) as status, \
                mock.patch.object(subscriber, "runtimes", return_value={"runtimes": True}) as runtimes, \
                mock.patch.object(subscriber, "extract_exception", return_value={"exception": True}) as exc, \
                mock.patch.object(subscriber, "extract_current_scope", return_value={"custom": True}) as scope:
            subscriber.process_action(event)
        req.assert_called_once_with(request_payload)
        status.assert_called_once_with(request_payload)
        runtimes.assert_called_once_with(event)
        exc.assert_called_once_with(request_payload)
        scope.assert_called_once_with()

    def test_logs_the_event(self, subscriber, event, sink):
        subscriber.process_action(event)
        assert json.loads(sink.messages[0]) == {
            "@source": "source",
            "tags": ["response"],
            "@fields": {
                "method": "GET", "ip": "127.0.0.1", "params": {"foo": "bar"}, "path": "/home",
                "format": "application/json", "controller": "home", "action": "index",
                "status": 200, "duration": 0.0, "view": 0.01, "db": 0.02,
            },
            "@timestamp": "2014-01-01T00:00:00.000Z",
            "@version": "1",
        }

    def test_exception_tag(self, subscriber, event, request_payload, sink):
        request_payload["exception"] = ("Exception", "message", ["app.py:1"])
        subscriber.process_action(event)
        assert '"tags":["response","exception"]' in sink.messages[0]
        assert json.loads(sink.messages[0])["@fields"]["exception"]["name"] == "Exception"

    def test_no_exception_tag_when_extractor_empty(self, subscriber, event, sink):
        with mock.patch.object(subscriber, "extract_exception", return_value={}):
            subscriber.process_action(event)
        assert '"tags":["response"]' in sink.messages[0]

    def test_clears_scope(self, subscriber, event):
        CurrentScope["foo"] = "bar"
        subscriber.process_action(event)
        assert CurrentScope.fields() == {}

    def test_clears_scope_when_logging_fails(self, subscriber, event):
        CurrentScope["foo"] = "bar"
        with mock.patch.object(subscriber, "log_event", side_effect=OSError("disk full")):
            with pytest.raises(OSError):
                subscriber.process_action(event)
        assert CurrentScope.fields() == {}

    def test_redirect_location_logged(self, subscriber, event, sink):
        CurrentScope["location"] = "http://www.example.com"
        subscriber.process_action(event)
        assert json.loads(sink.messages[0])["@fields"]["location"] == "http://www.example.com"


class TestRedirectTo:
    def test_stores_location_in_scope(self, subscriber, make_event, sink):
        subscriber.redirect_to(make_event("redirect_to.controller", {"location": "http://example.com", "status": 302}))
        assert CurrentScope["location"] == "http://example.com"
        assert sink.messages == []


class TestLogEvent:
    def test_sets_tag(self, subscriber, sink):
        subscriber.log_event("tag", {})
        assert '"tags":["tag"]' in sink.messages[0]

    def test_renders_fields(self, subscriber, sink):
        subscriber.log_event(["tag"], {"foo": "bar", "baz": "bot"})
        assert '"@fields":{"foo":"bar","baz":"bot"}' in sink.messages[0]

    def test_sets_source(self, subscriber, sink):
        subscriber.log_event(["tag"], {})
        assert '"@source":"source"' in sink.messages[0]

    def test_hook_receives_event(self, subscriber):
        yielded = []
        subscriber.log_event(["tag"], {}, yielded.append)
        assert len(yielded) == 1
        assert isinstance(yielded[0], LogEvent)

    def test_hook_modifies_event(self, subscriber, sink):
        subscriber.log_event(["tag"], {}, lambda event: event.tags.append("extra"))
        assert '"tags":["tag","extra"]' in sink.messages[0]

    def test_newline_terminated(self, subscriber, sink):
        subscriber.log_event(["tag"], {})
        assert sink.messages[0].endswith("}\n")

    def test_ignores_minimum_level(self, subscriber, sink, pipeline):
        pipeline.level = "unknown"
        subscriber.log_event(["tag"], {})
        assert len(sink.messages) == 1


class TestAttachTo:
    def test_channels_for(self):
        assert channels_for("controller") == [
            "start_processing.controller", "process_action.controller", "redirect_to.controller",
        ]
        assert channels_for("database") == ["sql.database"]

    def test_unknown_namespace(self):
        with pytest.raises(ValueError):
            channels_for("mailer")

    def test_subscribes_handlers(self, subscriber, notifier, sql_payload, sink):
        subscriber.attach_to(notifier, "database")
        notifier.publish("sql.database", sql_payload)
        assert len(sink.messages) == 1

    def test_attach_twice_does_not_duplicate(self, subscriber, notifier, sql_payload, sink):
        subscriber.attach_to(notifier, "database")
        assert subscriber.attach_to(notifier, "database") == []
        notifier.publish("sql.database", sql_payload)
        assert len(sink.messages) == 1
