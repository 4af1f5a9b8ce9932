# parkgate/services/class_ref.py
"""
Which capacity pool a vehicle draws from: the shared public pool or a named
subscription class. The persisted sentinel "public" only exists at the DB edge.
"""

from dataclasses import dataclass
from typing import Optional, Union

PUBLIC_CODE = "public"


@dataclass(frozen=True)
class PublicPool:
    @property
    def code(self) -> str:
        return PUBLIC_CODE

    def __str__(self):
        return PUBLIC_CODE


@dataclass(frozen=True)
class NamedClass:
    code: str

    def __str__(self):
        return self.code


ClassRef = Union[PublicPool, NamedClass]

PUBLIC = PublicPool()


def parse_class_ref(raw: Optional[str]) -> ClassRef:
    """Map a stored/requested class code to a ClassRef. Blank or "public" → PUBLIC."""
    if raw is None:
        return PUBLIC
    raw = raw.strip()
    if not raw or raw.lower() == PUBLIC_CODE:
        return PUBLIC
    return NamedClass(raw)
