import logging

from shared.logging.logging_setup import ColoredFormatter, ColorLogger, HeartbeatFilter, TimezoneFormatter, build_logging_config


def _record(level: int, msg: str, *args, name: str = "catalog_ai_bridge", **extra) -> logging.LogRecord:
    record = logging.LogRecord(name, level, __file__, 1, msg, args, None)
    record.__dict__.update(extra)
    return record


class ListHandler(logging.Handler):
    def __init__(self) -> None:
        super().__init__()
        self.records: list[logging.LogRecord] = []

    def emit(self, record: logging.LogRecord) -> None:
        self.records.append(record)


class TestFormatters:
    def test_warning_prefixed_and_args_merged(self):
        formatter = TimezoneFormatter("UTC", fmt="%(message)s")
        record = _record(logging.WARNING, "Lost %s", "feed")
        assert formatter.format(record) == "⚠️ Lost feed"
        # the original record is left for the next handler
        assert record.msg == "Lost %s"

    def test_mismatched_args_do_not_raise(self):
        formatter = TimezoneFormatter("UTC", fmt="%(message)s")
        assert "oops" in formatter.format(_record(logging.INFO, "oops %d", "x"))

    def test_color_applied_only_when_requested(self):
        formatter = ColoredFormatter("UTC", fmt="%(message)s")
        assert formatter.format(_record(logging.INFO, "done", color="green")) == "\033[32mdone\033[0m"
        assert formatter.format(_record(logging.INFO, "done")) == "done"


class TestColorLogger:
    def test_color_travels_as_extra(self):
        inner = logging.getLogger("catalog_ai_bridge.tests.color")
        inner.setLevel(logging.DEBUG)
        handler = ListHandler()
        inner.addHandler(handler)
        try:
            ColorLogger(inner).info("Synced %d", 3, color="green")
            ColorLogger(inner).warning("plain")
        finally:
            inner.removeHandler(handler)
        assert handler.records[0].getMessage() == "Synced 3"
        assert handler.records[0].color == "green"
        assert not hasattr(handler.records[1], "color")


class TestConfig:
    def test_heartbeat_records_dropped(self):
        heartbeat = HeartbeatFilter()
        assert heartbeat.filter(_record(logging.DEBUG, "Server heartbeat succeeded", name="pymongo.topology")) is False
        assert heartbeat.filter(_record(logging.DEBUG, "heartbeat", name="catalog_ai_bridge")) is True

    def test_file_handler_optional(self):
        assert set(build_logging_config(logging.INFO, "UTC", None)["handlers"]) == {"console"}
        config = build_logging_config(logging.DEBUG, "UTC", "/tmp/app.log")
        assert config["root"]["handlers"] == ["console", "file"]
        assert config["handlers"]["file"]["level"] == logging.DEBUG
