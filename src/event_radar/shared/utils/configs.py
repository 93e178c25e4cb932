"""
Configuration settings for the application.
"""

import os
from typing import Dict, TypedDict

import pytz
from dotenv import load_dotenv

load_dotenv()  # Load variables from .env

APP_VERSION = "1.4.0"


class BaseConfig(TypedDict):
    """Type definition for base configuration values.

    Attributes:
        timezone: pytz timezone the radar region lives in
        date_format: Format string for ISO calendar dates
        time_format: Format string for 24-hour times
        default_city: City assumed when a source does not name one
        default_time: Start time assumed when a source does not give one
        user_agent: Descriptive user agent sent to every source
        default_headers: Default HTTP headers for requests
    """

    timezone: pytz.BaseTzInfo
    date_format: str
    time_format: str
    default_city: str
    default_time: str
    user_agent: str
    default_headers: Dict[str, str]


_user_agent = os.getenv(
    "USER_AGENT",
    f"Mozilla/5.0 (compatible; EventRadar/{APP_VERSION}; +https://kinn.at/radar)",
)

base_configs: BaseConfig = {
    "timezone": pytz.timezone(os.getenv("RADAR_TIMEZONE", "Europe/Vienna")),
    "date_format": "%Y-%m-%d",
    "time_format": "%H:%M",
    "default_city": os.getenv("RADAR_DEFAULT_CITY", "Innsbruck"),
    "default_time": os.getenv("RADAR_DEFAULT_TIME", "18:00"),
    "user_agent": _user_agent,
    "default_headers": {
        "User-Agent": _user_agent,
        "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,application/json;q=0.8,*/*;q=0.7",
        "Accept-Language": os.getenv("ACCEPT_LANGUAGE", "de-AT,de;q=0.9,en;q=0.8"),
    },
}

redis_config = {
    "redis_url": os.getenv("REDIS_URL", "redis://localhost:6379"),
    "redis_socket_timeout": int(os.getenv("REDIS_SOCKET_TIMEOUT", 5)),
    "redis_socket_connect_timeout": int(os.getenv("REDIS_SOCKET_CONNECT_TIMEOUT", 5)),
    "redis_retry_on_timeout": os.getenv("REDIS_RETRY_ON_TIMEOUT", "true").lower()
    == "true",
    "key_prefix": os.getenv("REDIS_KEY_PREFIX", "radar"),
}

llm_configs = {
    "api_key": os.getenv("RADAR_LLM_API_KEY", os.getenv("OPENAI_API_KEY")),
    # Any OpenAI-compatible endpoint works, e.g. https://api.groq.com/openai/v1
    "base_url": os.getenv("RADAR_LLM_BASE_URL"),
    "model": os.getenv("RADAR_LLM_MODEL", "llama-3.3-70b-versatile"),
    "temperature": float(os.getenv("RADAR_LLM_TEMPERATURE", 0.1)),
    "max_tokens": int(os.getenv("RADAR_LLM_MAX_TOKENS", 4000)),
    "timeout_seconds": float(os.getenv("RADAR_LLM_TIMEOUT", 45)),
}

render_configs = {
    "api_url": os.getenv("RENDER_API_URL", "https://api.firecrawl.dev/v1"),
    "api_key": os.getenv("FIRECRAWL_API_KEY"),
    "default_wait_ms": int(os.getenv("RENDER_WAIT_MS", 3000)),
    "timeout_seconds": float(os.getenv("RENDER_TIMEOUT", 60)),
}

pipeline_configs = {
    "max_workers": int(os.getenv("RADAR_MAX_WORKERS", 3)),
    "fetch_timeout_seconds": float(os.getenv("RADAR_FETCH_TIMEOUT", 15)),
    "inter_source_delay_seconds": float(os.getenv("RADAR_INTER_SOURCE_DELAY", 1.0)),
    "batch_deadline_seconds": float(os.getenv("RADAR_BATCH_DEADLINE", 600)),
    # Token bucket per provider: refill rate (tokens/second) and burst capacity
    "provider_rate_per_second": float(os.getenv("RADAR_PROVIDER_RATE", 0.5)),
    "provider_burst": int(os.getenv("RADAR_PROVIDER_BURST", 2)),
    "provider_concurrency": int(os.getenv("RADAR_PROVIDER_CONCURRENCY", 1)),
    "default_max_chars": int(os.getenv("RADAR_MAX_CHARS", 20000)),
    "past_window_days": 90,
    "future_window_days": 365,
}

health_configs = {
    "counter_ttl_seconds": 60 * 60 * 24 * 7,
    "daily_metrics_ttl_seconds": 60 * 60 * 24 * 8,
    "failing_after_days": 1,
    "degraded_after_days": 3,
}

publish_configs = {
    "widget_page_size": int(os.getenv("WIDGET_PAGE_SIZE", 5)),
    "widget_minimum_events": int(os.getenv("WIDGET_MINIMUM_EVENTS", 2)),
    "calendar_name": os.getenv("CALENDAR_NAME", "KINN-RADAR - Free AI Events Tyrol"),
    "calendar_description": os.getenv(
        "CALENDAR_DESCRIPTION", "Free AI, tech and startup events in Tyrol"
    ),
    "calendar_prodid": "-//KINN//RADAR AI Events Tyrol//EN",
    "uid_domain": os.getenv("CALENDAR_UID_DOMAIN", "radar.kinn.at"),
    "reminder_minutes": int(os.getenv("CALENDAR_REMINDER_MINUTES", 60)),
    "default_duration_hours": 2,
}

notify_configs = {
    "aws_region": os.getenv("AWS_REGION", "eu-central-1"),
    "sns_topic_arn": os.getenv("RADAR_ALERT_TOPIC_ARN"),
    "ses_sender": os.getenv("SENDER_EMAIL", "KINN Radar <radar@kinn.at>"),
    "ses_recipient": os.getenv("RADAR_DIGEST_RECIPIENT", "admin@libralab.ai"),
    "admin_dashboard_url": os.getenv(
        "RADAR_ADMIN_URL", "https://kinn.at/admin#radar"
    ),
}

auth_configs = {
    "admin_token": os.getenv("RADAR_ADMIN_TOKEN"),
    "cron_secret": os.getenv("RADAR_CRON_SECRET"),
}
