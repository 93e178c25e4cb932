"""
Main application for the extraction pipeline.

Event shapes:
    {"source": "InnCubator"}            run one source
    {"all": true}                       run every active source
    {"testMode": true, ...}             extract without storing
"""

import asyncio
from typing import Any, Dict

from event_radar.pipeline.service import PipelineService
from event_radar.shared.services.notification_service import NotificationService
from event_radar.shared.utils.configs import notify_configs
from event_radar.shared.utils.errors import RadarError
from event_radar.shared.utils.helpers import (
    error_body,
    generate_response,
    get_aws_info,
    is_scheduler_or_admin,
    is_truthy,
    parse_request_body,
    to_serializable,
)
from event_radar.shared.utils.logger import logger
from event_radar.shared.utils.types import ErrorType
from event_radar.sources.registry import get_source


def _request_params(event: Dict[str, Any]) -> Dict[str, Any]:
    params = dict(event.get("queryStringParameters") or {})
    if "body" in event:
        params.update(parse_request_body(event))
    for key in ("source", "all", "testMode"):
        if key in event:
            params[key] = event[key]
    return params


async def app(
    event: Dict[str, Any],
    context: Dict[str, Any] = None,
    service: PipelineService = None,
) -> Dict[str, Any]:
    """
    Run the pipeline for one source or for all active sources.

    Args:
        event: Lambda event object (scheduler payload or API Gateway event)
        context: Lambda context object
        service: PipelineService to use (a new one by default)

    Returns:
        Response object
    """
    aws_info = get_aws_info(context)
    if not is_scheduler_or_admin(event):
        logger.warning("Pipeline request rejected: missing or invalid token")
        return generate_response(
            401, error_body(ErrorType.UNAUTHORIZED, "Unauthorized", **aws_info)
        )

    owns_service = service is None
    try:
        params = _request_params(event)
        test_mode = is_truthy(params.get("testMode"))

        if not params.get("source") and not is_truthy(params.get("all")):
            return generate_response(
                400,
                error_body(
                    ErrorType.VALUE_ERROR,
                    'Pass {"source": "<name>"} or {"all": true}',
                    **aws_info,
                ),
            )

        if service is None:
            notifier = NotificationService() if notify_configs["sns_topic_arn"] else None
            service = PipelineService(notifier=notifier)

        if params.get("source"):
            descriptor = get_source(params["source"])
            result = await service.run_source(descriptor, test_mode=test_mode)
            return generate_response(
                200 if result.success else 502,
                {
                    "status": "success" if result.success else "error",
                    "testMode": test_mode,
                    "data": to_serializable(result),
                    **aws_info,
                },
            )

        batch = await service.run_all(test_mode=test_mode)
        return generate_response(
            200,
            {
                "status": "success",
                "testMode": test_mode,
                "summary": batch.summary(),
                "failingSources": service.failing_sources(batch.results),
                "data": to_serializable(batch.results),
                **aws_info,
            },
        )

    except RadarError as e:
        logger.error(f"Pipeline error: {e.error_type.value} - {e.message}")
        return generate_response(e.status_code, error_body(e.error_type, e.message, **aws_info))
    except Exception as e:
        logger.error(f"Unexpected error: {str(e)}")
        return generate_response(
            500,
            error_body(
                ErrorType.UNKNOWN_ERROR, f"An unexpected error occurred: {e}", **aws_info
            ),
        )
    finally:
        if owns_service and service:
            await service.close()


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


if __name__ == "__main__":
    """Run every active source in test mode as a script."""
    response = asyncio.run(app({"all": True, "testMode": True}))
    logger.info(f"Response: {response['body'].get('summary')}")
