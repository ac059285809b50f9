class JaxelimError(Exception):
    """Base class for errors raised by jaxelim."""


class InvalidOrdering(JaxelimError, ValueError):
    """Elimination ordering is malformed, or references a variable that is not
    involved in the factor graph."""


class DuplicateKey(JaxelimError, KeyError):
    """Attempted to insert a variable index that already exists."""


class SizeMismatch(JaxelimError, ValueError):
    """Two vector containers do not have the same structure."""


class EliminationFailure(JaxelimError, RuntimeError):
    """A dense elimination step failed, typically because the local linear system
    is rank deficient."""


class InvariantViolation(JaxelimError, AssertionError):
    """Internal consistency check failed. Indicates a programming error."""


class InvalidKey(JaxelimError, KeyError):
    """Variable index is out of range, for example negative."""
