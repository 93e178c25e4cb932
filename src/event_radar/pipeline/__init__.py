from .rate_limiter import ProviderLimiter, TokenBucket
from .service import PipelineService
