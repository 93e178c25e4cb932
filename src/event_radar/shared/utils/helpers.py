"""
Utility functions for the application.
"""

import hmac
import json
import re
from dataclasses import asdict, is_dataclass
from datetime import date, datetime, timedelta
from enum import Enum
from typing import Any, Dict, Optional

import pytz

from event_radar.shared.utils.configs import auth_configs, base_configs
from event_radar.shared.utils.errors import RadarError
from event_radar.shared.utils.types import (
    AwsInfo,
    ErrorType,
    LambdaContext,
    ResponseBody,
    ResponseType,
)


class RadarJSONEncoder(json.JSONEncoder):
    """
    Custom JSON encoder for pipeline objects.

    Handles dataclass DTOs (via `asdict`), enums (their value) and
    date/datetime objects (ISO 8601 strings). Anything else falls back to
    the default JSONEncoder behaviour.
    """

    def default(self, obj):
        if is_dataclass(obj) and not isinstance(obj, type):
            return asdict(obj)
        elif isinstance(obj, Enum):
            return obj.value
        elif isinstance(obj, (datetime, date)):
            return obj.isoformat()
        return super().default(obj)


def to_serializable(obj: Any) -> Any:
    """Round-trip an object through RadarJSONEncoder into plain JSON types."""
    return json.loads(json.dumps(obj, cls=RadarJSONEncoder, ensure_ascii=False))


def generate_response(
    status_code: int,
    body: ResponseBody,
    headers: Optional[Dict[str, str]] = None,
) -> ResponseType:
    """
    Generate a standardized API response.

    Args:
        status_code: HTTP status code for the response
        body: Response body content (dict, or a raw string for non-JSON feeds)
        headers: Headers replacing the JSON default

    Returns:
        Formatted response object
    """
    if isinstance(body, dict):
        error = body.get("error")
        if isinstance(error, dict) and isinstance(error.get("type"), ErrorType):
            error["type"] = error["type"].value

    return {
        "statusCode": status_code,
        "headers": headers or {"Content-Type": "application/json"},
        "body": body,
    }


def error_body(error_type: ErrorType, message: str, **extra: Any) -> Dict[str, Any]:
    """Build the `{"status": "error", "error": {...}}` body used by every handler."""
    return {
        "status": "error",
        "error": {"type": error_type, "message": message},
        **extra,
    }


def get_aws_info(context: Optional[LambdaContext]) -> AwsInfo:
    """
    Pull the request id and log stream out of a Lambda context, if any.

    Args:
        context: Lambda context object or None

    Returns:
        Dict with aws_request_id/log_stream_name, empty outside Lambda
    """
    if context and hasattr(context, "aws_request_id"):
        return {
            "aws_request_id": context.aws_request_id,
            "log_stream_name": context.log_stream_name,
        }
    return {}


def normalize_source_name(name: str) -> str:
    """
    Normalise a source name for use in Redis keys.

    "Startup.Tirol Events" -> "startuptirol-events"
    """
    lowered = re.sub(r"\s+", "-", name.strip().lower())
    return re.sub(r"[^a-z0-9-]", "", lowered)


def now_local() -> datetime:
    return datetime.now(base_configs["timezone"])


def today_local() -> date:
    """Today's date in the radar timezone."""
    return now_local().date()


def parse_iso_date(value: Any) -> Optional[date]:
    """
    Parse a YYYY-MM-DD string (or a longer ISO timestamp) into a date.

    Args:
        value: String, date or datetime

    Returns:
        The date, or None if the value is empty or not a valid date
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if not value or not isinstance(value, str):
        return None
    try:
        return datetime.strptime(value.strip()[:10], base_configs["date_format"]).date()
    except ValueError:
        return None


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parse an ISO 8601 timestamp; naive values are taken as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = pytz.utc.localize(parsed)
    return parsed


def parse_request_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """`parse_body` for handlers: a malformed body becomes a 400 VALUE_ERROR."""
    try:
        return parse_body(event)
    except ValueError as e:
        raise RadarError(
            f"Invalid request body: {e}", error_type=ErrorType.VALUE_ERROR, status_code=400
        )


def utc_timestamp(at: Optional[datetime] = None) -> str:
    """ISO 8601 UTC timestamp with millisecond precision and a Z suffix."""
    moment = (at or datetime.now(pytz.utc)).astimezone(pytz.utc)
    return moment.strftime("%Y-%m-%dT%H:%M:%S.") + f"{moment.microsecond // 1000:03d}Z"


def date_range(end: date, days: int):
    """Yield `days` dates ending at (and including) `end`, newest first."""
    for offset in range(days):
        yield end - timedelta(days=offset)


def is_truthy(value: Any) -> bool:
    """Interpret request flags such as `"true"`, `"1"` or `True`."""
    if isinstance(value, bool):
        return value
    if value is None:
        return False
    return str(value).strip().lower() in ("true", "1", "yes", "on")


def parse_body(event: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return the JSON body of an API Gateway style event as a dict.

    Raises:
        ValueError: If the body is present but is not a JSON object
    """
    body = event.get("body")
    if body is None or body == "":
        return {}
    if isinstance(body, dict):
        return body
    parsed = json.loads(body)
    if not isinstance(parsed, dict):
        raise ValueError("Request body must be a JSON object")
    return parsed


def check_bearer_token(event: Dict[str, Any], expected: Optional[str]) -> bool:
    """
    Constant-time check of an `Authorization: Bearer <token>` header.

    A missing expected token always fails so an unconfigured deployment
    is closed, not open.
    """
    if not expected:
        return False
    headers = {k.lower(): v for k, v in (event.get("headers") or {}).items()}
    auth = headers.get("authorization", "")
    if not auth.startswith("Bearer "):
        return False
    return hmac.compare_digest(auth[len("Bearer "):].encode(), expected.encode())


def is_scheduler_or_admin(event: Dict[str, Any]) -> bool:
    """
    Authorize a job trigger.

    Scheduled invocations carry neither headers nor an HTTP method; HTTP
    calls need the cron secret or the admin token.
    """
    if "headers" not in event and "httpMethod" not in event:
        return True
    return check_bearer_token(event, auth_configs["cron_secret"]) or check_bearer_token(
        event, auth_configs["admin_token"]
    )
