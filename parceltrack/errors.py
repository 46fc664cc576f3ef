"""
ParcelTrack Errors - Exception hierarchy for the tracking core

Parse failures are not exceptions: ExtractionEngine.parse returns None.
Everything below propagates to the caller for presentation.
"""


class ParcelTrackError(Exception):
    """Base class for all ParcelTrack errors"""
    pass


class ValidationError(ParcelTrackError):
    """Raised when a value violates a domain invariant (status, tag, tracking number)"""
    pass


class CapabilityError(ParcelTrackError):
    """Raised when a carrier capability is used on a carrier without that variant"""
    pass


class AuthenticationError(ParcelTrackError):
    """Raised when a username/password pair does not match"""
    pass


class AuthenticationRequiredError(ParcelTrackError):
    """Raised when an operation needs an active session and none was given"""
    pass


class DuplicateUserError(ParcelTrackError):
    """Raised when registering a username that already exists"""
    pass


class ShipmentNotFoundError(ParcelTrackError):
    """Raised when a tracking number is not in the caller's shipments"""
    pass


class ConfigError(ParcelTrackError):
    """Raised when a configuration file or dict is invalid"""
    pass
