"""
Admin review endpoint.

GET  lists the review queue (`?includePast=true` to include past events).
POST runs a bulk action: {"action": "approve"|"reject"|"unreview", "eventIds": [...]}
     or the status migration: {"action": "migrate", "dryRun": true}.
"""

import asyncio
import json
from typing import Any, Dict

from event_radar.review.service import ReviewService
from event_radar.shared.utils.configs import auth_configs
from event_radar.shared.utils.errors import RadarError, ReviewError
from event_radar.shared.utils.helpers import (
    check_bearer_token,
    error_body,
    generate_response,
    get_aws_info,
    is_truthy,
    parse_body,
)
from event_radar.shared.utils.logger import logger
from event_radar.shared.utils.types import ErrorType


async def app(
    event: Dict[str, Any],
    context: Dict[str, Any] = None,
    service: ReviewService = None,
) -> Dict[str, Any]:
    """
    Handle an admin review request.

    Args:
        event: API Gateway style event
        context: Lambda context object
        service: ReviewService to use (a new one by default)

    Returns:
        Response object
    """
    aws_info = get_aws_info(context)

    if not check_bearer_token(event, auth_configs["admin_token"]):
        logger.warning("Review request rejected: missing or invalid admin token")
        return generate_response(
            401, error_body(ErrorType.UNAUTHORIZED, "Unauthorized", **aws_info)
        )

    try:
        service = service or ReviewService()
        method = (event.get("httpMethod") or "GET").upper()

        if method == "GET":
            params = event.get("queryStringParameters") or {}
            queue = await service.list_for_review(
                include_past=is_truthy(params.get("includePast"))
            )
            return generate_response(200, {"status": "success", "data": queue, **aws_info})

        if method != "POST":
            raise ReviewError(f"Method {method} not allowed", status_code=405)

        try:
            body = parse_body(event)
        except (ValueError, json.JSONDecodeError) as e:
            raise ReviewError(f"Invalid request body: {e}")

        action = body.get("action")
        if action == "migrate":
            summary = await service.migrate_legacy(dry_run=is_truthy(body.get("dryRun")))
            return generate_response(200, {"status": "success", "data": summary, **aws_info})

        count = await service.bulk_action(action, body.get("eventIds"))
        return generate_response(
            200,
            {
                "status": "success",
                "message": f"{count} events updated",
                "count": count,
                **aws_info,
            },
        )

    except RadarError as e:
        logger.error(f"Review error: {e.error_type.value} - {e.message}")
        return generate_response(e.status_code, error_body(e.error_type, e.message, **aws_info))
    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}")
        return generate_response(
            500,
            error_body(
                ErrorType.UNKNOWN_ERROR, f"An unexpected error occurred: {e}", **aws_info
            ),
        )


def lambda_handler(event, context):
    """
    Lambda handler function.

    Args:
        event: Lambda event object
        context: Lambda context object

    Returns:
        Response object
    """
    return asyncio.run(app(event, context))
