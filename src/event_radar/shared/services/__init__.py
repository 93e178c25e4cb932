from .llm_service import LLMService
from .notification_service import NotificationService
from .render_service import RenderService
