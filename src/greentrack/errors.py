# greentrack/errors.py

"""
greentrack.errors

Central exception hierarchy for greentrack.

Callers can catch GreenTrackError (broad) or specific subclasses (narrow).
"""


class GreenTrackError(RuntimeError):
    """Base class for all greentrack runtime errors."""


# ---- Sensor errors -----------------------------

class SensorError(GreenTrackError):
    """Errors raised at the sensor-source boundary."""

class SensorUnavailable(SensorError):
    """A motion or position capability is missing or was denied."""

class GeolocationError(SensorError):
    """The position source reported a failure (e.g. permission revoked)."""


# ---- Activity / sink errors --------------------

class ValidationError(GreenTrackError):
    """A manual activity submission was rejected before reaching the sink."""

class SinkError(GreenTrackError):
    """The downstream activity consumer failed to accept an event."""


# ---- Session errors ----------------------------

class SessionStateError(GreenTrackError):
    """An operation was attempted in the wrong tracking-session state."""


# ---- Input / config errors ---------------------

class InvalidGpxError(GreenTrackError):
    """GPX file could not be parsed or did not contain expected data structures."""

class ConfigError(GreenTrackError):
    """Configuration file exists but could not be parsed."""
