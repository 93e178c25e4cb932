from .service import (
    ExtractionReport,
    ExtractionService,
    Extractor,
    LLMExtractor,
    is_within_window,
    validate_candidate,
)
