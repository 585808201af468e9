"""
Consent Audit Pipeline
Anonymized, append-only logging of cookie consent decisions
"""

# Lazy imports to avoid circular dependency issues during Django app loading
# Import these within functions/classes when needed:
# from app.platform.consent.recorder import ConsentRecorder
# from app.platform.consent.retention import RetentionSweeper
# from app.platform.consent.hashing import ConsentHasher, hash_consent_id

__all__ = [
    "ConsentRecorder",
    "RetentionSweeper",
    "ConsentHasher",
    "hash_consent_id",
]
