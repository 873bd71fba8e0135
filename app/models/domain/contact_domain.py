# app/models/domain/contact_domain.py
"""
Contact Domain Models
Domain models for participant resolution.
Used by the contact resolver and the communication-history providers.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from email.utils import getaddresses, parsedate_to_datetime
from enum import StrEnum


class ContactSource(StrEnum):
    HISTORY = "history"
    DIRECTORY = "directory"
    EXPLICIT = "explicit"


def normalize_email(email: str) -> str:
    return email.strip().lower()


@dataclass(slots=True)
class Contact:
    """A resolved participant identity with its ranking confidence."""

    name: str
    email: str
    confidence: float
    frequency: int = 0
    last_contact_at: datetime | None = None
    source: ContactSource = ContactSource.HISTORY

    def __post_init__(self):
        if not 0.0 <= self.confidence <= 1.0:
            raise ValueError(f"confidence must be within [0, 1], got {self.confidence}")
        if self.frequency < 0:
            raise ValueError("frequency must be non-negative")

    @property
    def key(self) -> str:
        return normalize_email(self.email)

    def to_dict(self) -> dict:
        """Convert to dictionary for cache storage and API responses."""
        return {
            "name": self.name,
            "email": self.email,
            "confidence": self.confidence,
            "frequency": self.frequency,
            "last_contact_at": self.last_contact_at.isoformat() if self.last_contact_at else None,
            "source": self.source.value,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "Contact":
        last_contact = data.get("last_contact_at")
        return cls(
            name=data["name"],
            email=data["email"],
            confidence=float(data["confidence"]),
            frequency=int(data.get("frequency", 0)),
            last_contact_at=datetime.fromisoformat(last_contact) if last_contact else None,
            source=ContactSource(data.get("source", ContactSource.HISTORY)),
        )


@dataclass(slots=True)
class EmailAddress:
    name: str
    email: str


@dataclass(slots=True)
class MessageHeaders:
    """From/To/Date headers of one message in the user's communication history."""

    message_id: str
    sender: EmailAddress | None
    recipients: list[EmailAddress] = field(default_factory=list)
    sent_at: datetime | None = None

    @classmethod
    def from_raw(cls, message_id: str, headers: dict[str, str]) -> "MessageHeaders":
        """Build from a case-insensitive header mapping (name -> value)."""
        lowered = {name.lower(): value for name, value in headers.items()}
        senders = parse_address_list(lowered.get("from", ""))
        return cls(
            message_id=message_id,
            sender=senders[0] if senders else None,
            recipients=parse_address_list(lowered.get("to", "")),
            sent_at=parse_header_date(lowered.get("date")),
        )

    def participants(self) -> list[EmailAddress]:
        """Direct participants (From and To); CC/BCC are ignored."""
        addresses = [self.sender] if self.sender else []
        addresses.extend(self.recipients)
        return addresses


@dataclass(slots=True)
class DirectoryEntry:
    email: str
    display_name: str


def parse_address_list(value: str) -> list[EmailAddress]:
    """Parse an address header such as '"Doe, Jane" <jane@x.com>, bob@y.com'."""
    if not value:
        return []

    addresses = []
    for name, email in getaddresses([value]):
        email = email.strip()
        if "@" not in email:
            continue
        addresses.append(EmailAddress(name=name.strip().strip('"'), email=email))
    return addresses


def parse_header_date(value: str | None) -> datetime | None:
    """Parse an RFC 2822 Date header, returning None when it is malformed."""
    if not value:
        return None
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
