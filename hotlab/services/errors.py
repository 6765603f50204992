"""
errors.py
---------
Error taxonomy of the radioprotection engine.

All errors are local validation failures raised synchronously to the caller.
They derive from ValueError so callers that only care about "bad input" can
catch one type; the HTTP layer maps RadioprotectionError to status 400.
"""


class RadioprotectionError(ValueError):
    """Base class for inputs that are inconsistent or not physically meaningful."""


class UnknownIsotope(RadioprotectionError):
    """Raised when a symbol resolves to no catalog entry."""


class InvalidInput(RadioprotectionError):
    """Raised for out-of-domain arguments such as a negative elapsed time."""


class InvalidActivity(InvalidInput):
    """Raised when an activity is zero, negative or not finite."""


class InvalidThreshold(InvalidInput):
    """Raised when a minimum usable activity is zero or negative."""


class InvalidPatientParameters(InvalidInput):
    """Raised for non-positive activity or weight, or a negative age."""


class UnsupportedTest(RadioprotectionError):
    """Raised for a quality-control test type without acceptance criteria."""
