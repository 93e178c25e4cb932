"""
Cleanup endpoint, called by the scheduler or by an admin.

Dry run is the default; pass {"dryRun": false} to delete.
"""

import asyncio
from typing import Any, Dict

from event_radar.cleanup.service import CleanupService
from event_radar.shared.utils.errors import RadarError
from event_radar.shared.utils.helpers import (
    error_body,
    generate_response,
    get_aws_info,
    is_scheduler_or_admin,
    is_truthy,
    parse_request_body,
)
from event_radar.shared.utils.logger import logger
from event_radar.shared.utils.types import ErrorType


async def app(
    event: Dict[str, Any],
    context: Dict[str, Any] = None,
    service: CleanupService = None,
) -> Dict[str, Any]:
    """
    Run the cleanup job.

    Args:
        event: Lambda event object
        context: Lambda context object
        service: CleanupService to use (a new one by default)

    Returns:
        Response object with the removal plan and what was removed
    """
    aws_info = get_aws_info(context)
    if not is_scheduler_or_admin(event):
        logger.warning("Cleanup request rejected: missing or invalid secret")
        return generate_response(
            401, error_body(ErrorType.UNAUTHORIZED, "Unauthorized", **aws_info)
        )

    try:
        params = dict(event.get("queryStringParameters") or {})
        params.update(parse_request_body(event))
        if "dryRun" in event:
            params["dryRun"] = event["dryRun"]
        dry_run = is_truthy(params["dryRun"]) if "dryRun" in params else True

        service = service or CleanupService()
        summary = await service.run(dry_run=dry_run)
        return generate_response(200, {"status": "success", "data": summary, **aws_info})

    except RadarError as e:
        logger.error(f"Cleanup error: {e.error_type.value} - {e.message}")
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
    return asyncio.run(app(event, context))
