"""FastAPI routers for the membership API."""

from __future__ import annotations

from fastapi import APIRouter

from roundtable.api import attendance, charity, guests, meetings, members, org_settings, pipeliners, reports

router = APIRouter(prefix="/api")

router.include_router(meetings.router)
router.include_router(attendance.router)
router.include_router(charity.router)
router.include_router(guests.router)
router.include_router(pipeliners.router)
router.include_router(members.router)
router.include_router(reports.router)
router.include_router(org_settings.router)

__all__ = ["router"]
