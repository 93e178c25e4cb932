from .service import HealthTracker, classify_status
