"""
Event radar: AI-assisted ingestion of free tech events.
"""

from event_radar.shared.utils.configs import APP_VERSION

__version__ = APP_VERSION
