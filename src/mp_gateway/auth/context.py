"""Explicit actor context passed from the router into every service call."""

from dataclasses import dataclass


@dataclass(frozen=True)
class CurrentUser:
    id: str
    email: str | None = None
