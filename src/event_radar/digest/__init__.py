from .service import DigestService, approval_rate, build_digest_html
