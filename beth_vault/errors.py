"""Failure kinds raised by vault operations.

Every failure aborts the whole operation: the vault restores its state to the
checkpoint taken on entry before the exception leaves the public method.
Exceptions raised by collaborators are not wrapped.
"""


class VaultError(Exception):
    """Base class for all vault failures."""


class Unauthorized(VaultError):
    """The caller is not allowed to perform the operation."""


class AlreadyInitialized(VaultError):
    pass


class NotInitialized(VaultError):
    pass


class VersionMismatch(VaultError):
    """The caller's expected version differs from the stored one."""

    def __init__(self, expected: int, actual: int):
        super().__init__(f"unexpected contract version: expected {expected}, actual {actual}")
        self.expected = expected
        self.actual = actual


class OperationsStopped(VaultError):
    pass


class PegUnstable(VaultError):
    """stETH share price moved since the last harvest."""


class InvalidConfiguration(VaultError):
    pass


class InsufficientRefundBalance(VaultError):
    pass


class AmountMismatch(VaultError):
    pass


class InvalidState(VaultError):
    """The operation is not valid in the vault's current state."""


class OperationsNotStopped(InvalidState):
    pass


class LiquidationTooEarly(InvalidState):
    pass
