# Copyright (C) 2025 Global Digital Labs (gdlabs.io)
# SPDX-License-Identifier: LGPL-3.0-or-later
"""API v1 routes package.

Modules:
    events: Role assignment webhooks from the host platform.
    sweeps: On-demand sweep enqueueing.
    tracking: Read access to tracking records.
"""

from fastapi import APIRouter

from src.api.v1 import events, sweeps, tracking

# Create the main v1 router
router = APIRouter(prefix="/api/v1")

router.include_router(events.router, prefix="/events", tags=["Events"])
router.include_router(sweeps.router, prefix="/sweeps", tags=["Sweeps"])
router.include_router(tracking.router, prefix="/tracking", tags=["Tracking"])

__all__ = ["router"]
