from .service import ReviewAction, ReviewService, plan_transition
from .status import derive_status
