from .service import ContentFetcher
