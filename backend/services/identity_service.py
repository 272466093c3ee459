"""Identity resolution for review prompt subjects.

Maps a request to a stable subject: the authenticated user id when there
is one, otherwise the client-supplied anonymous id and/or a device
fingerprint derived from request headers. The fingerprint is a soft
engagement heuristic and must not be used for access control; users
behind the same NAT with identical browsers will collide.
"""

import hashlib
import uuid
from dataclasses import dataclass
from typing import Optional

from sqlalchemy import ColumnElement, or_

from models.review_preference import ReviewPreference

FINGERPRINT_LENGTH = 32


@dataclass(frozen=True)
class Subject:
    """The identity keys available for one request."""

    user_id: Optional[str] = None
    anonymous_id: Optional[str] = None
    device_fingerprint: Optional[str] = None

    @property
    def is_authenticated(self) -> bool:
        return bool(self.user_id)


def device_fingerprint(
    user_agent: Optional[str],
    accept_language: Optional[str],
    client_ip: Optional[str],
) -> str:
    """Derive a fixed-length fingerprint from coarse request metadata."""
    raw = f"{user_agent or ''}{accept_language or ''}{client_ip or ''}"
    return hashlib.sha256(raw.encode("utf-8")).hexdigest()[:FINGERPRINT_LENGTH]


def generate_anonymous_id() -> str:
    """Generate a fresh anonymous id for a client that has none yet."""
    return uuid.uuid4().hex


def resolve_subject(
    user_id: Optional[str],
    anonymous_id: Optional[str],
    user_agent: Optional[str],
    accept_language: Optional[str],
    client_ip: Optional[str],
) -> Subject:
    """Build a Subject from the authenticated id and request metadata."""
    return Subject(
        user_id=user_id or None,
        anonymous_id=(anonymous_id or "").strip() or None,
        device_fingerprint=device_fingerprint(user_agent, accept_language, client_ip),
    )


def lookup_filter(subject: Subject) -> ColumnElement[bool]:
    """SQL criterion selecting the subject's ReviewPreference record(s).

    Authenticated identity is authoritative and matched alone. Anonymous
    subjects match on ANY of their present keys; absent keys are left out
    so that a missing anonymous id never matches rows with a NULL one.

    Raises:
        ValueError: If the subject carries no usable key.
    """
    if subject.user_id:
        return ReviewPreference.user_id == subject.user_id

    clauses = []
    if subject.anonymous_id:
        clauses.append(ReviewPreference.anonymous_id == subject.anonymous_id)
    if subject.device_fingerprint:
        clauses.append(ReviewPreference.device_fingerprint == subject.device_fingerprint)
    if not clauses:
        raise ValueError("Subject has no user id, anonymous id or device fingerprint")
    return or_(*clauses)
