"""
Outbound notifications: SES for the weekly report, SNS for failure alerts.
"""

from typing import Any, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from event_radar.shared.utils.configs import notify_configs
from event_radar.shared.utils.errors import NotificationError
from event_radar.shared.utils.logger import logger
from event_radar.shared.utils.types import ErrorType


class NotificationService:
    """Helper class for delivering reports and alerts through AWS."""

    def __init__(self, ses_client: Any = None, sns_client: Any = None):
        region = notify_configs["aws_region"]
        self.ses_client = ses_client or boto3.client("ses", region_name=region)
        self.sns_client = sns_client or boto3.client("sns", region_name=region)
        self.topic_arn = notify_configs["sns_topic_arn"]
        self.sender = notify_configs["ses_sender"]
        self.recipient = notify_configs["ses_recipient"]

    def send_report(self, subject: str, html: str, recipient: Optional[str] = None) -> str:
        """
        Email an HTML report.

        Args:
            subject: Mail subject
            html: Rendered HTML body
            recipient: Overrides the configured digest recipient

        Returns:
            The SES message id

        Raises:
            NotificationError: If SES rejects the message
        """
        to_address = recipient or self.recipient
        try:
            response = self.ses_client.send_email(
                Source=self.sender,
                Destination={"ToAddresses": [to_address]},
                Message={
                    "Subject": {"Data": subject, "Charset": "UTF-8"},
                    "Body": {"Html": {"Data": html, "Charset": "UTF-8"}},
                },
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to send report to {to_address}: {str(e)}")
            raise NotificationError(
                message=f"Failed to send report: {e}",
                error_type=ErrorType.AWS_ERROR,
            )
        message_id = response.get("MessageId", "")
        logger.info(f"Sent report '{subject}' to {to_address} ({message_id})")
        return message_id

    def send(self, message: str, subject: str = "Event Radar alert") -> str:
        """
        Publish an out-of-band alert to the configured SNS topic.

        Returns:
            The SNS message id

        Raises:
            NotificationError: If no topic is configured or SNS rejects the message
        """
        if not self.topic_arn:
            raise NotificationError(message="RADAR_ALERT_TOPIC_ARN is not configured")
        try:
            response = self.sns_client.publish(
                TopicArn=self.topic_arn,
                Subject=subject[:100],
                Message=message,
            )
        except (ClientError, BotoCoreError) as e:
            logger.error(f"Failed to publish alert: {str(e)}")
            raise NotificationError(
                message=f"Failed to publish alert: {e}",
                error_type=ErrorType.AWS_ERROR,
            )
        return response.get("MessageId", "")

    def notify_source_failure(self, source_name: str, error: str) -> str:
        """Immediate alert for a single source that failed extraction."""
        message = (
            f"Source '{source_name}' failed extraction.\n\n"
            f"Error: {error}\n\n"
            f"Review: {notify_configs['admin_dashboard_url']}"
        )
        return self.send(message, subject=f"Radar source failing: {source_name}")
