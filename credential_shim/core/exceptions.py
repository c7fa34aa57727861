"""
Error taxonomy for the credential shim.

Fatal errors stop the whole process with a diagnostic. CredentialFetchError
raised from a background refresh is logged and retried instead.
"""


class CredentialShimError(Exception):
    """Base class for all credential shim errors"""


class ConfigurationError(CredentialShimError):
    """Missing or malformed configuration, e.g. a bad credentials endpoint URI"""


class CredentialFetchError(CredentialShimError):
    """A single fetch cycle against the credentials endpoint failed"""


class InitialFetchError(CredentialFetchError):
    """The synchronous startup fetch failed"""


class CommandStartError(CredentialShimError):
    """The supervised command could not be started"""


class ChildTerminatedError(CredentialShimError):
    """The supervised command ended without a reportable exit code"""

    def __init__(self, message: str, signal_number: int):
        super().__init__(message)
        self.signal_number = signal_number


# Errors that terminate the process with a non-zero status
FATAL_ERRORS = (
    ConfigurationError,
    InitialFetchError,
    CommandStartError,
    ChildTerminatedError,
)
