"""SQLAlchemy ORM models and enums.

This module defines the tracking schema: users mirrored from the identity
provider, the websites they own, per-site platform connections, and the
event log that every ingested commerce event lands in.

Ownership is strictly hierarchical (User > Website > Connection/EventLog) and
every edge is ON DELETE CASCADE, so removing a user removes everything below.
"""

import enum
from datetime import datetime, timezone

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    String,
    false,
    func,
    text,
    true,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import declarative_base, relationship


# Single Base used by the entire application
Base = declarative_base()

# jsonb on PostgreSQL, plain JSON elsewhere (SQLite in tests)
JSONDocument = JSON().with_variant(JSONB(), "postgresql")


def utcnow() -> datetime:
    """Naive UTC timestamp, matching the timezone-less DateTime columns."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


# Enums ---------------------------------------------------------

class ConnectionTypeEnum(str, enum.Enum):
    """Whether a connection feeds events in or receives them."""
    source = "source"
    destination = "destination"


class ProcessingStatusEnum(str, enum.Enum):
    pending = "pending"
    processing = "processing"
    failed = "failed"
    duplicate = "duplicate"


# Core models ----------------------------------------------------

class User(Base):
    """Local identity record mirroring an identity-provider account.

    The provider owns authentication; this row exists so websites can hang off
    an internal integer key instead of the provider's string id.
    """
    __tablename__ = "users"

    id = Column(Integer, primary_key=True)
    clerk_id = Column(String, unique=True, index=True, nullable=False)
    email = Column(String, nullable=False)
    name = Column(String, nullable=True)
    registered_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)
    is_onboarded = Column(Boolean, default=False, server_default=false())

    websites = relationship(
        "Website",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    # This is used to display the model in the admin interface.
    def __str__(self):
        return f"{self.name or 'Unnamed'} ({self.email})"


class Website(Base):
    """A tracked storefront.

    Currency and timezone are the reporting context for revenue; they default
    to USD/UTC until the owner configures them.
    """
    __tablename__ = "websites"

    id = Column(Integer, primary_key=True)
    # Internal user id, not the provider id
    user_id = Column(Integer, ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)
    url = Column(String, nullable=False)
    name = Column(String, nullable=False)
    created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)

    currency = Column(String, default="USD", server_default="USD", nullable=False)
    timezone = Column(String, default="UTC", server_default="UTC", nullable=False)

    user = relationship("User", back_populates="websites")
    connections = relationship(
        "Connection",
        back_populates="website",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    event_logs = relationship(
        "EventLog",
        back_populates="website",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )

    def __str__(self):
        return f"{self.name} ({self.url})"


class Connection(Base):
    """A platform linked to a website as an event source or destination.

    `config` is opaque at this layer: its shape depends on `platform` and is
    validated by clarity.services.connection_config before it is written.
    Revoked credentials deactivate the row instead of deleting it.
    """
    __tablename__ = "connections"

    id = Column(Integer, primary_key=True)
    website_id = Column(Integer, ForeignKey("websites.id", ondelete="CASCADE"), index=True)

    platform = Column(String, nullable=False)  # meta, shopify, tiktok, ...
    type = Column(
        Enum(
            ConnectionTypeEnum,
            name="connection_type",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        nullable=False,
    )
    config = Column(JSONDocument, default=dict, server_default=text("'{}'"), nullable=False)

    # Fernet ciphertext, see clarity.security.encrypt_secret
    encrypted_access_token = Column(String, nullable=True)

    is_active = Column(Boolean, default=True, server_default=true(), nullable=False)
    created_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)

    website = relationship("Website", back_populates="connections")

    def __str__(self):
        return f"{self.platform} ({self.type.value if self.type else '?'})"


class EventLog(Base):
    """One ingested commerce event and its processing state.

    The permanent audit trail: rows are only removed by cascading website
    deletion. `original_payload` is kept so events can be replayed if the
    matching logic changes.
    """
    __tablename__ = "event_logs"
    __table_args__ = (
        # Dedup key: one accepted event per source occurrence per site
        Index("unique_event_id_per_site", "website_id", "event_id", unique=True),
    )

    id = Column(Integer, primary_key=True)
    website_id = Column(Integer, ForeignKey("websites.id", ondelete="CASCADE"), index=True)

    event_id = Column(String, nullable=False, index=True)
    event_name = Column(String, nullable=False, index=True)  # Purchase, AddToCart, ...
    event_source_url = Column(String, nullable=True)

    # Matching data
    user_ip_address = Column(String, nullable=True)
    user_agent = Column(String, nullable=True)
    fbp = Column(String, nullable=True)  # browser id
    fbc = Column(String, nullable=True)  # click id
    hashed_email = Column(String, nullable=True)
    hashed_phone = Column(String, nullable=True)

    # Decimal text, never float
    value = Column(String, nullable=True)
    currency = Column(String, nullable=True)

    status = Column(
        Enum(
            ProcessingStatusEnum,
            name="processing_status",
            values_callable=lambda obj: [e.value for e in obj],
        ),
        default=ProcessingStatusEnum.pending,
        server_default=ProcessingStatusEnum.pending.value,
        nullable=False,
    )
    platform_response = Column(JSONDocument, nullable=True)
    original_payload = Column(JSONDocument, nullable=True)
    match_quality_score = Column(String, nullable=True)

    # received_at is ours; event_time is what the source claims
    received_at = Column(DateTime, default=utcnow, server_default=func.now(), nullable=False)
    event_time = Column(DateTime, nullable=False)

    website = relationship("Website", back_populates="event_logs")

    def __str__(self):
        return f"{self.event_name} {self.event_id} ({self.status.value if self.status else '?'})"
