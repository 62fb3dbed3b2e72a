"""Training signals from Strava running telemetry."""

__version__ = "0.1.0"
