# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Role assignment webhooks.

The host platform calls these endpoints whenever a role is granted or
removed in a context:
- POST /role-assigned - A role was granted
- POST /role-unassigned - A role was removed

Both answer with what the lifecycle engine did. Calls must carry the
X-Webhook-Secret header when a secret is configured.

Example:
    POST /api/v1/events/role-assigned
    {
        "actor_id": 2,
        "subject_id": 57,
        "context_id": 310,
        "course_id": 12,
        "role_id": 9,
        "role_assignment_id": 4411
    }
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import EnrolmentServiceDep, verify_webhook_secret
from src.infrastructure.database.connection import DatabaseError
from src.models.temporary_enrolment import (
    LifecycleResultResponse,
    RoleAssignedEvent,
    RoleUnassignedEvent,
)
from src.utils.logging import bind_context, clear_context

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_webhook_secret)])


@router.post(
    "/role-assigned",
    response_model=LifecycleResultResponse,
    summary="Role assigned",
    description="Track, reject or upgrade a temporary enrolment after a role was granted.",
)
async def role_assigned(
    event: RoleAssignedEvent,
    service: EnrolmentServiceDep,
) -> LifecycleResultResponse:
    """Handle a role grant.

    Args:
        event: The role assignment event.
        service: Temporary enrolment service for this request.

    Returns:
        What the engine did.

    Raises:
        HTTPException: If the platform database failed.
    """
    bind_context(role_assignment_id=event.role_assignment_id)
    try:
        logger.info(
            "Role assigned: role=%d, user=%d, context=%d, by=%d",
            event.role_id,
            event.subject_id,
            event.context_id,
            event.actor_id,
        )
        result = await service.engine.on_role_assigned(event)
    except DatabaseError as e:
        logger.error("Failed to handle role assignment %d: %s", event.role_assignment_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process role assignment",
        ) from e
    finally:
        clear_context()

    return LifecycleResultResponse(**result.to_dict())


@router.post(
    "/role-unassigned",
    response_model=LifecycleResultResponse,
    summary="Role unassigned",
    description="Finish a temporary enrolment after a role was removed.",
)
async def role_unassigned(
    event: RoleUnassignedEvent,
    service: EnrolmentServiceDep,
) -> LifecycleResultResponse:
    """Handle a role removal.

    Args:
        event: The role removal event.
        service: Temporary enrolment service for this request.

    Returns:
        What the engine did.

    Raises:
        HTTPException: If the platform database failed.
    """
    bind_context(role_assignment_id=event.role_assignment_id)
    try:
        logger.info(
            "Role unassigned: role=%d, user=%d, context=%d, by=%d",
            event.role_id,
            event.subject_id,
            event.context_id,
            event.actor_id,
        )
        result = await service.engine.on_role_unassigned(event)
    except DatabaseError as e:
        logger.error("Failed to handle role removal %d: %s", event.role_assignment_id, e)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process role removal",
        ) from e
    finally:
        clear_context()

    return LifecycleResultResponse(**result.to_dict())
