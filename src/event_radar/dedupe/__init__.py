from .service import DeduplicationService, canonical_key, event_id
