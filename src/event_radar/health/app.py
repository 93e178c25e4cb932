"""
Source health report endpoint.
"""

import asyncio
from typing import Any, Dict

from event_radar.health.service import HealthTracker
from event_radar.shared.utils.errors import RadarError
from event_radar.shared.utils.helpers import (
    error_body,
    generate_response,
    get_aws_info,
    utc_timestamp,
)
from event_radar.shared.utils.logger import logger
from event_radar.shared.utils.types import ErrorType
from event_radar.sources.registry import SOURCE_REGISTRY


async def app(
    event: Dict[str, Any],
    context: Dict[str, Any] = None,
    tracker: HealthTracker = None,
) -> Dict[str, Any]:
    """
    Report the health of every registered source.

    Args:
        event: Lambda event object
        context: Lambda context object
        tracker: HealthTracker to use (a new one by default)

    Returns:
        Response object with the sorted source list and a summary
    """
    aws_info = get_aws_info(context)
    try:
        tracker = tracker or HealthTracker()
        report = await tracker.report(SOURCE_REGISTRY.values())
        return generate_response(
            200,
            {
                "status": "success",
                "data": report,
                "timestamp": utc_timestamp(),
                **aws_info,
            },
        )
    except RadarError as e:
        logger.error(f"Health report error: {e.error_type.value} - {e.message}")
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
