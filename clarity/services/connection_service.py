"""Connection lifecycle: create, activate, deactivate.

WHAT:
    - Validates the platform config document before it is stored
    - Encrypts the platform access token (Fernet) before it is stored
    - Deactivation drops the stored token; reactivation needs a new one

REFERENCES:
    - clarity/services/connection_config.py (per-platform config models)
    - clarity/security.py (encrypt_secret)
"""

import logging
from typing import Optional

from sqlalchemy.orm import Session

from ..exceptions import CredentialError
from ..models import Connection, ConnectionTypeEnum, Website
from ..security import encrypt_secret
from .connection_config import default_direction, validate_config

logger = logging.getLogger(__name__)


def create_connection(
    db: Session,
    website: Website,
    *,
    platform: str,
    config: dict,
    type: Optional[ConnectionTypeEnum] = None,
    access_token: Optional[str] = None,
) -> Connection:
    """Attach a platform connection to a website.

    Raises:
        UnsupportedPlatformError: unknown platform id
        pydantic.ValidationError: config does not match the platform
    """
    normalized = validate_config(platform, config)
    direction = type or default_direction(platform)

    connection = Connection(
        website_id=website.id,
        platform=platform,
        type=direction,
        config=normalized,
        is_active=True,
    )
    if access_token:
        connection.encrypted_access_token = encrypt_secret(
            access_token, context=f"{platform}:website={website.id}"
        )

    db.add(connection)
    db.commit()
    db.refresh(connection)

    logger.info(
        "[CONNECTION] Created %s %s connection %s for website %s",
        platform, direction.value, connection.id, website.id,
    )
    return connection


def set_connection_active(
    db: Session,
    connection: Connection,
    active: bool,
    *,
    access_token: Optional[str] = None,
) -> Connection:
    """Activate or deactivate a connection.

    Deactivating clears the stored token. Activating keeps the current token
    unless a new one is supplied.
    """
    if active:
        if access_token:
            connection.encrypted_access_token = encrypt_secret(
                access_token, context=f"{connection.platform}:connection={connection.id}"
            )
        elif not connection.encrypted_access_token and connection.type == ConnectionTypeEnum.destination:
            raise CredentialError("An access token is required to reactivate a destination connection")
        connection.is_active = True
    else:
        connection.is_active = False
        connection.encrypted_access_token = None

    db.commit()
    db.refresh(connection)

    logger.info(
        "[CONNECTION] Connection %s %s", connection.id, "activated" if active else "deactivated"
    )
    return connection
