"""The signed-in user."""

from __future__ import annotations

from dataclasses import dataclass


@dataclass
class User:
    """A user known to the application; the name is empty until sign-in."""

    name: str = ""