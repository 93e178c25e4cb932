from .dto import (
    BatchResult,
    CandidateEvent,
    EventStatus,
    FetchOutcome,
    FetchStrategy,
    HealthRecord,
    HealthStatus,
    RawFetchResult,
    SourceDescriptor,
    SourceRunResult,
    StoredEvent,
)
