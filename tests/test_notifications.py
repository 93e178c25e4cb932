"""
Tests for the SES/SNS notification service with stubbed boto3 clients.
"""

from unittest.mock import Mock

import pytest
from botocore.exceptions import ClientError

from event_radar.shared.services.notification_service import NotificationService
from event_radar.shared.utils.configs import notify_configs
from event_radar.shared.utils.errors import NotificationError
from event_radar.shared.utils.types import ErrorType


def client_error(operation):
    return ClientError({"Error": {"Code": "Throttling", "Message": "slow down"}}, operation)


@pytest.fixture
def ses_client():
    client = Mock()
    client.send_email.return_value = {"MessageId": "ses-123"}
    return client


@pytest.fixture
def sns_client():
    client = Mock()
    client.publish.return_value = {"MessageId": "sns-456"}
    return client


@pytest.fixture
def topic(monkeypatch):
    monkeypatch.setitem(notify_configs, "sns_topic_arn", "arn:aws:sns:eu-central-1:1:radar")


class TestSendReport:
    def test_sends_html_mail(self, ses_client, sns_client):
        service = NotificationService(ses_client, sns_client)

        message_id = service.send_report("Weekly", "<p>hi</p>", recipient="ops@example.com")

        assert message_id == "ses-123"
        kwargs = ses_client.send_email.call_args[1]
        assert kwargs["Destination"] == {"ToAddresses": ["ops@example.com"]}
        assert kwargs["Message"]["Body"]["Html"]["Data"] == "<p>hi</p>"

    def test_ses_failure(self, ses_client, sns_client):
        ses_client.send_email.side_effect = client_error("SendEmail")
        service = NotificationService(ses_client, sns_client)

        with pytest.raises(NotificationError) as exc_info:
            service.send_report("Weekly", "<p>hi</p>")
        assert exc_info.value.error_type == ErrorType.AWS_ERROR


class TestSend:
    def test_publishes_to_topic(self, ses_client, sns_client, topic):
        service = NotificationService(ses_client, sns_client)

        assert service.send("body", subject="x" * 150) == "sns-456"
        kwargs = sns_client.publish.call_args[1]
        assert kwargs["TopicArn"] == "arn:aws:sns:eu-central-1:1:radar"
        assert len(kwargs["Subject"]) == 100

    def test_needs_a_topic(self, ses_client, sns_client, monkeypatch):
        monkeypatch.setitem(notify_configs, "sns_topic_arn", None)
        service = NotificationService(ses_client, sns_client)

        with pytest.raises(NotificationError):
            service.send("body")
        sns_client.publish.assert_not_called()

    def test_source_failure_alert(self, ses_client, sns_client, topic):
        service = NotificationService(ses_client, sns_client)

        service.notify_source_failure("LSZ", "HTTP 500")

        kwargs = sns_client.publish.call_args[1]
        assert "LSZ" in kwargs["Subject"]
        assert "HTTP 500" in kwargs["Message"]

    def test_sns_failure(self, ses_client, sns_client, topic):
        sns_client.publish.side_effect = client_error("Publish")
        service = NotificationService(ses_client, sns_client)

        with pytest.raises(NotificationError) as exc_info:
            service.send("body")
        assert exc_info.value.error_type == ErrorType.AWS_ERROR
