"""Async Strava API client."""

from pacelab.strava.client import AsyncStravaClient

__all__ = ["AsyncStravaClient"]
