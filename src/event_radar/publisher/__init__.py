from .calendar import build_calendar
from .feeds import approved_future_events, filter_publishable
from .widget import build_widget_page
