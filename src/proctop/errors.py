"""Exception taxonomy for proctop.

``str(exc)`` is always a short message suitable for the status line.
"""


class ProctopError(Exception):
    """Base class for all proctop errors."""


class EnumerationError(ProctopError):
    """The process list could not be obtained."""


class ControlError(ProctopError):
    """A process control operation failed."""


class ProcessNotFound(ControlError):
    def __init__(self, pid: int) -> None:
        super().__init__(f"Process {pid} not found or has terminated")
        self.pid = pid


class AccessDenied(ControlError):
    def __init__(self, pid: int) -> None:
        super().__init__("Access denied - try running with elevated privileges")
        self.pid = pid


class AlreadyInState(ControlError):
    def __init__(self, state: str) -> None:
        super().__init__(f"Process is already {state}")
        self.state = state


class InvalidParameter(ControlError):
    def __init__(self, reason: str) -> None:
        super().__init__(f"Invalid parameter: {reason}")
        self.reason = reason


class SystemProcessProtected(ControlError):
    def __init__(self, pid: int) -> None:
        super().__init__("Cannot perform operation on system processes")
        self.pid = pid


class UnsupportedOperation(ControlError):
    def __init__(self, operation: str) -> None:
        super().__init__(f"{operation} is not supported on this platform")
        self.operation = operation


class AffinityError(ControlError):
    """A CPU affinity request was rejected."""


class NoCoresSelected(AffinityError):
    def __init__(self) -> None:
        super().__init__("At least one core must be selected")


class InvalidCoreSelection(AffinityError):
    def __init__(self, mask: int) -> None:
        super().__init__("Invalid core selection")
        self.mask = mask
