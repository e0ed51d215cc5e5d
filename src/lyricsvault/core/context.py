"""Caller identity passed into the lyrics core."""

from dataclasses import dataclass


@dataclass(frozen=True)
class Caller:
    """Authenticated caller as vouched for by the boundary layer.

    Attributes:
        user_id: Stable user identifier
    """

    user_id: str
