# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""FastAPI dependency injection definitions.

This module provides dependency functions for FastAPI endpoints.
Dependencies are used to:
- Get a database session for the request
- Get the temporary enrolment service bound to that session
- Authenticate webhook calls from the host platform

Example:
    @router.post("/role-assigned", dependencies=[Depends(verify_webhook_secret)])
    async def role_assigned(
        event: RoleAssignedEvent,
        service: TemporaryEnrolmentService = Depends(get_enrolment_service),
    ):
        ...
"""

import logging
import secrets
from typing import Annotated, AsyncGenerator

from fastapi import Depends, Header, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from src.core.config import get_settings
from src.core.config.settings import Settings
from src.domains.temporary_enrolment.exceptions import InvalidConfigurationError
from src.domains.temporary_enrolment.service import (
    TemporaryEnrolmentService,
    build_sql_service,
)
from src.infrastructure.database.connection import DatabaseError, get_database

logger = logging.getLogger(__name__)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a platform database session for the request.

    The session commits when the request handler returns and rolls back
    when it raises.

    Yields:
        AsyncSession for the platform database.

    Raises:
        HTTPException: If the database has not been initialized.
    """
    try:
        db = get_database()
    except DatabaseError as e:
        logger.error("Database unavailable: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database unavailable",
        ) from e

    async with db.session() as session:
        yield session


def get_enrolment_service(
    session: Annotated[AsyncSession, Depends(get_db_session)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> TemporaryEnrolmentService:
    """Get the temporary enrolment service for the request.

    Args:
        session: Request database session.
        settings: Application settings.

    Returns:
        Service bound to the request session.

    Raises:
        HTTPException: If the enrolment settings are invalid.
    """
    try:
        return build_sql_service(session, settings)
    except InvalidConfigurationError as e:
        logger.error("Invalid temporary enrolment configuration: %s", str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=f"Invalid configuration: {e}",
        ) from e


def verify_webhook_secret(
    settings: Annotated[Settings, Depends(get_settings)],
    x_webhook_secret: Annotated[str | None, Header()] = None,
) -> None:
    """Check the shared secret sent by the host platform.

    Requests pass unchecked while no secret is configured.

    Args:
        settings: Application settings.
        x_webhook_secret: Value of the X-Webhook-Secret header.

    Raises:
        HTTPException: If the header is missing or does not match.
    """
    expected = settings.api.webhook_secret
    if expected is None:
        return

    if x_webhook_secret is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing webhook secret",
        )

    if not secrets.compare_digest(
        x_webhook_secret.encode("utf-8"),
        expected.get_secret_value().encode("utf-8"),
    ):
        logger.warning("Rejected webhook call with invalid secret")
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Invalid webhook secret",
        )


EnrolmentServiceDep = Annotated[TemporaryEnrolmentService, Depends(get_enrolment_service)]
