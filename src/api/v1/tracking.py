# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""Tracking record endpoints.

- GET / - List all tracking records
- GET /{role_assignment_id} - Get the record of one role assignment
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import EnrolmentServiceDep, verify_webhook_secret
from src.models.temporary_enrolment import (
    TrackingRecordListResponse,
    TrackingRecordResponse,
)

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_webhook_secret)])


@router.get(
    "",
    response_model=TrackingRecordListResponse,
    summary="List tracking records",
)
async def list_tracking_records(service: EnrolmentServiceDep) -> TrackingRecordListResponse:
    """List all tracking records, oldest first."""
    records = await service.store.list_all()
    return TrackingRecordListResponse(
        items=[TrackingRecordResponse.model_validate(r) for r in records],
        total=len(records),
    )


@router.get(
    "/{role_assignment_id}",
    response_model=TrackingRecordResponse,
    summary="Get tracking record",
)
async def get_tracking_record(
    role_assignment_id: int,
    service: EnrolmentServiceDep,
) -> TrackingRecordResponse:
    """Get the tracking record of a role assignment.

    Raises:
        HTTPException: If the role assignment is not tracked.
    """
    record = await service.store.get_by_role_assignment_id(role_assignment_id)
    if record is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Role assignment {role_assignment_id} is not tracked",
        )
    return TrackingRecordResponse.model_validate(record)
