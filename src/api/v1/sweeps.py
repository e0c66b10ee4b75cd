# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""On-demand sweep endpoints.

- POST /{name} - Enqueue a sweep (expire, remind, backfill, reconcile)

Sweeps run in the Dramatiq workers; the endpoint only enqueues them.
"""

import logging

from fastapi import APIRouter, Depends, HTTPException, status

from src.api.dependencies import verify_webhook_secret
from src.infrastructure.background.tasks import SWEEP_ACTORS
from src.models.temporary_enrolment import SweepName, SweepQueuedResponse

logger = logging.getLogger(__name__)

router = APIRouter(dependencies=[Depends(verify_webhook_secret)])


@router.post(
    "/{name}",
    response_model=SweepQueuedResponse,
    status_code=status.HTTP_202_ACCEPTED,
    summary="Enqueue sweep",
    description="Enqueue one of the temporary enrolment sweeps.",
)
async def enqueue_sweep(name: SweepName) -> SweepQueuedResponse:
    """Enqueue a sweep.

    Args:
        name: Sweep to run.

    Returns:
        The Dramatiq message ID.

    Raises:
        HTTPException: If the broker rejected the message.
    """
    actor = SWEEP_ACTORS[name]
    try:
        message = actor.send()
    except Exception as e:
        logger.error("Failed to enqueue sweep %s: %s", name, str(e))
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Failed to enqueue sweep",
        ) from e

    logger.info("Enqueued sweep %s (message %s)", name, message.message_id)
    return SweepQueuedResponse(sweep=name, message_id=message.message_id)
