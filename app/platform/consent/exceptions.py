"""
Consent audit pipeline errors.
Each error carries a stable machine-readable code and the HTTP status the
API reports for it.
"""


class ConsentError(Exception):
    error_code = "consent_error"
    status_code = 500
    public_message = "Consent could not be processed"

    def __init__(self, message=None):
        super().__init__(message or self.public_message)


# ─────────────────────────────────────────
# Validation (rejected at the boundary, no partial write)
# ─────────────────────────────────────────
class ConsentValidationError(ConsentError):
    error_code = "validation_error"
    status_code = 400
    public_message = "Invalid consent submission"


class InvalidIdentifier(ConsentValidationError):
    public_message = "Consent Id: Invalid consent identifier."


class InvalidSource(ConsentValidationError):
    public_message = "Source: Must be one of accept, change."


# ─────────────────────────────────────────
# Configuration
# ─────────────────────────────────────────
class ConfigurationError(ConsentError):
    error_code = "config_error"
    public_message = "Consent logging is not properly configured"


class MissingSecret(ConfigurationError):
    public_message = "Consent secret key has not been provisioned"


# ─────────────────────────────────────────
# Storage
# ─────────────────────────────────────────
class StorageError(ConsentError):
    error_code = "db_error"
    public_message = "Database error occurred"


class StorageUnavailable(StorageError):
    pass
