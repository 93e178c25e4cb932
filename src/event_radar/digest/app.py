"""
Digest endpoints.

`app` sends the weekly digest (scheduler, cron secret or admin token).
`metrics_app` returns the dashboard numbers to an admin.
"""

import asyncio
from typing import Any, Dict

from event_radar.digest.service import DigestService
from event_radar.shared.utils.configs import auth_configs
from event_radar.shared.utils.errors import RadarError
from event_radar.shared.utils.helpers import (
    check_bearer_token,
    error_body,
    generate_response,
    get_aws_info,
    is_scheduler_or_admin,
    parse_request_body,
)
from event_radar.shared.utils.logger import logger
from event_radar.shared.utils.types import ErrorType


def _unauthorized(aws_info: Dict[str, str]) -> Dict[str, Any]:
    return generate_response(
        401, error_body(ErrorType.UNAUTHORIZED, "Unauthorized", **aws_info)
    )


def _error_response(e: Exception, aws_info: Dict[str, str]) -> Dict[str, Any]:
    if isinstance(e, RadarError):
        logger.error(f"Digest error: {e.error_type.value} - {e.message}")
        return generate_response(e.status_code, error_body(e.error_type, e.message, **aws_info))
    logger.error(f"Unexpected error: {str(e)}")
    return generate_response(
        500,
        error_body(ErrorType.UNKNOWN_ERROR, f"An unexpected error occurred: {e}", **aws_info),
    )


async def app(
    event: Dict[str, Any],
    context: Dict[str, Any] = None,
    service: DigestService = None,
) -> Dict[str, Any]:
    """
    Send the weekly digest.

    Args:
        event: Scheduler or API Gateway style event; an optional
            "recipient" in the body overrides the configured address
        context: Lambda context object
        service: DigestService to use (a new one by default)

    Returns:
        Response object with the delivery result
    """
    aws_info = get_aws_info(context)
    if not is_scheduler_or_admin(event):
        logger.warning("Digest request rejected: missing or invalid secret")
        return _unauthorized(aws_info)

    try:
        recipient = parse_request_body(event).get("recipient") or event.get("recipient")
        service = service or DigestService()
        result = await service.run(recipient=recipient)
        return generate_response(200, {"status": "success", "data": result, **aws_info})
    except Exception as e:
        return _error_response(e, aws_info)


async def metrics_app(
    event: Dict[str, Any],
    context: Dict[str, Any] = None,
    service: DigestService = None,
) -> Dict[str, Any]:
    """Admin dashboard numbers."""
    aws_info = get_aws_info(context)
    if not check_bearer_token(event, auth_configs["admin_token"]):
        logger.warning("Metrics request rejected: missing or invalid admin token")
        return _unauthorized(aws_info)

    try:
        service = service or DigestService()
        summary = await service.gather_metrics_summary()
        return generate_response(200, {"status": "success", "data": summary, **aws_info})
    except Exception as e:
        return _error_response(e, aws_info)


def lambda_handler(event, context):
    return asyncio.run(app(event, context))


def metrics_handler(event, context):
    return asyncio.run(metrics_app(event, context))
