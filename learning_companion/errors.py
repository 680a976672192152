"""Request-level failures and the HTTP status each one maps to.

Provider hiccups inside the image pipeline never reach this module: they
are recovered as description fragments. Only what the caller has to see
is raised as one of these.
"""


class CompanionError(Exception):
    status_code = 500

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class MissingInputError(CompanionError):
    """No file, no text: the request itself is incomplete."""
    status_code = 400


class CapabilityUnavailableError(CompanionError):
    """A cloud-backed feature was asked for while no credential is configured."""
    status_code = 503


class ProviderError(CompanionError):
    """An upstream provider failed and there is nothing local to fall back to."""
    status_code = 502
