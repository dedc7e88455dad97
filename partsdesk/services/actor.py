# partsdesk/services/actor.py
from dataclasses import dataclass
from typing import Optional

from partsdesk.errors import AuthError


@dataclass(frozen=True)
class Actor:
    """Resolved identity of the caller, passed explicitly into every mutating operation."""
    id: str
    role: Optional[str] = None


def require_actor(actor: Optional[Actor]) -> Actor:
    if actor is None or not actor.id:
        raise AuthError("Unauthorized")
    return actor
