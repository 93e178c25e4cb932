from .registry import (
    SOURCE_REGISTRY,
    get_active_sources,
    get_source,
    get_sources_by_strategy,
    list_source_names,
)
