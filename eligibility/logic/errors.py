"""
Engine error kinds.

ConfigurationError is fatal for any computation that uses the offending
configuration. DataError marks lead data problems; a missing required field is
turned into a rejected score, a malformed profile is raised. TransientError
wraps downstream read/write failures.
"""

from typing import Any, List, Optional


class EngineError(Exception):
    """Base class for all eligibility engine errors."""


class ConfigurationError(EngineError):
    def __init__(self, message: str, details: Optional[List[Any]] = None):
        super().__init__(message)
        self.details = details or []


class BandResolutionError(ConfigurationError):
    """No loan band contains a score. Bands are validated on save, so this is an integrity bug."""


class DataError(EngineError):
    pass


class MalformedLeadError(DataError):
    pass


class TransientError(EngineError):
    pass


class LeadNotFoundError(EngineError):
    pass


class LenderNotFoundError(EngineError):
    pass


class NoActiveLendersError(EngineError):
    pass
