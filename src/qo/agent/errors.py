"""
Error taxonomy for quant-optik.

Network and payload failures are absorbed by the AI client and the paper
lookup into sentinel strings; the dispatcher renders everything else as an
error line. Nothing here is fatal to the terminal.
"""


class QOError(Exception):
    """Base class for quant-optik errors."""


class NetworkFailure(QOError):
    """Request rejected, unreachable, or answered with a non-2xx status."""


class MalformedResponse(QOError):
    """Provider payload did not have the expected shape."""


class NotFound(QOError):
    """Something looked up by name or pattern does not exist."""


class CommandNotFound(NotFound):
    def __init__(self, name: str):
        super().__init__(f"Command not found: {name}")
        self.name = name


class CredentialError(QOError):
    """Raised by login/register; the message is shown to the user as-is."""


class ValidationFailure(CredentialError):
    pass


class InvalidCredentials(CredentialError):
    def __init__(self, message: str = "Invalid credentials"):
        super().__init__(message)


class RegistryWriteFailure(CredentialError):
    """The user registry could not be written; nothing was recorded."""
