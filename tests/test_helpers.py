"""
Tests for the shared helper functions.
"""

import logging
from datetime import date, datetime

import pytest
import pytz

from event_radar.shared.schemas.dto import EventStatus
from event_radar.shared.utils.errors import RadarError
from event_radar.shared.utils.helpers import (
    check_bearer_token,
    date_range,
    error_body,
    generate_response,
    is_scheduler_or_admin,
    is_truthy,
    normalize_source_name,
    parse_iso_date,
    parse_request_body,
    parse_timestamp,
    to_serializable,
    utc_timestamp,
)
from event_radar.shared.utils.logger import parse_level, setup_logger
from event_radar.shared.utils.types import ErrorType


class TestNormalizeSourceName:
    def test_lowercases_and_dashes(self):
        assert normalize_source_name("WKO Tirol") == "wko-tirol"

    def test_strips_punctuation(self):
        assert normalize_source_name("Startup.Tirol") == "startuptirol"
        assert normalize_source_name("Die Bäckerei") == "die-bckerei"


class TestDates:
    def test_parse_iso_date_accepts_datetime_strings(self):
        assert parse_iso_date("2025-03-14T18:00:00") == date(2025, 3, 14)

    def test_parse_iso_date_rejects_garbage(self):
        assert parse_iso_date("14.03.2025") is None
        assert parse_iso_date("") is None
        assert parse_iso_date(None) is None

    def test_parse_timestamp_treats_naive_as_utc(self):
        parsed = parse_timestamp("2025-03-14T10:00:00")
        assert parsed == datetime(2025, 3, 14, 10, 0, tzinfo=pytz.utc)

    def test_utc_timestamp_has_millis_and_z(self):
        moment = datetime(2025, 3, 14, 10, 0, 5, 123456, tzinfo=pytz.utc)
        assert utc_timestamp(moment) == "2025-03-14T10:00:05.123Z"

    def test_parse_timestamp_reads_utc_timestamp(self):
        moment = datetime(2025, 3, 14, 10, 0, 5, 123000, tzinfo=pytz.utc)
        assert parse_timestamp(utc_timestamp(moment)) == moment

    def test_date_range_is_newest_first(self):
        days = list(date_range(date(2025, 3, 3), 3))
        assert days == [date(2025, 3, 3), date(2025, 3, 2), date(2025, 3, 1)]


class TestRequestHelpers:
    def test_is_truthy(self):
        assert is_truthy("true")
        assert is_truthy("1")
        assert is_truthy(True)
        assert not is_truthy("false")
        assert not is_truthy(None)

    def test_bearer_token(self):
        event = {"headers": {"Authorization": "Bearer s3cret"}}
        assert check_bearer_token(event, "s3cret")
        assert not check_bearer_token(event, "other")

    def test_unconfigured_token_never_matches(self):
        event = {"headers": {"Authorization": "Bearer "}}
        assert not check_bearer_token(event, None)
        assert not check_bearer_token(event, "")

    def test_scheduled_invocation_is_authorized(self):
        assert is_scheduler_or_admin({"source": "aws.events"})

    def test_http_invocation_needs_a_token(self):
        assert not is_scheduler_or_admin({"headers": {}, "httpMethod": "POST"})

    def test_request_body_is_parsed(self):
        assert parse_request_body({"body": '{"all": true}'}) == {"all": True}
        assert parse_request_body({"body": None}) == {}

    def test_malformed_request_body_is_a_bad_request(self):
        with pytest.raises(RadarError) as exc_info:
            parse_request_body({"body": "{not json"})
        assert exc_info.value.status_code == 400
        assert exc_info.value.error_type == ErrorType.VALUE_ERROR

        with pytest.raises(RadarError):
            parse_request_body({"body": "[1, 2]"})


class TestResponses:
    def test_error_type_is_serialized(self):
        response = generate_response(400, error_body(ErrorType.VALUE_ERROR, "bad"))
        assert response["statusCode"] == 400
        assert response["body"]["error"] == {"type": "VALUE_ERROR", "message": "bad"}
        assert response["headers"]["Content-Type"] == "application/json"

    def test_to_serializable_handles_enums_and_dates(self):
        data = to_serializable({"status": EventStatus.APPROVED, "day": date(2025, 3, 14)})
        assert data == {"status": "approved", "day": "2025-03-14"}


class TestLogger:
    def test_parse_level(self):
        assert parse_level("debug") == logging.DEBUG
        assert parse_level(" WARNING ") == logging.WARNING
        assert parse_level("30") == 30
        assert parse_level(logging.ERROR) == logging.ERROR
        assert parse_level(None) == logging.INFO
        assert parse_level("chatty") == logging.INFO

    def test_setup_twice_keeps_one_handler(self, tmp_path):
        log_file = tmp_path / "radar.log"
        setup_logger("event_radar.test", level="debug")
        configured = setup_logger("event_radar.test", level="debug", log_file=str(log_file))

        assert len(configured.handlers) == 2
        assert configured.level == logging.DEBUG
        assert configured.propagate is False

        configured.info("hello")
        for handler in configured.handlers:
            handler.flush()
        assert "INFO - event_radar.test - hello" in log_file.read_text()

        for handler in configured.handlers:
            handler.close()
        configured.handlers.clear()
