"""Error taxonomy shared by the engine, the directory accessor and the hosts."""


class CodeLinkError(Exception):
    """Base class for every error raised by CodeLink."""

    kind = "error"


class AccessDenied(CodeLinkError):
    """The platform refused access to the project directory or a file."""

    kind = "access_denied"

    def __init__(self, message: str, guidance: str = ""):
        super().__init__(message)
        self.guidance = guidance

    def __str__(self) -> str:
        base = super().__str__()
        return f"{base}\n{self.guidance}" if self.guidance else base


class UserCancelled(CodeLinkError):
    """The user dismissed a picker; the operation is silently abandoned."""

    kind = "cancelled"


class NotFound(CodeLinkError):
    """A requested file could not be located in the project."""

    kind = "not_found"

    def __init__(self, name: str, message: str = ""):
        super().__init__(message or f'File "{name}" not found in the project.')
        self.name = name


class DeliveryUnconfirmed(CodeLinkError):
    """An attachment-style delivery could not be confirmed in time."""

    kind = "unconfirmed"


class SurfaceUnavailable(CodeLinkError):
    """The editable composer surface could not be located."""

    kind = "unavailable"
