"""API v1 routes, mounted under settings.API_PREFIX."""

from fastapi import APIRouter

from app.api.v1 import attachments, auth, findings, health, messages, reports, users

router = APIRouter()
router.include_router(health.router, tags=["health"])
router.include_router(auth.router, tags=["auth"])
router.include_router(users.router, tags=["users"])
router.include_router(findings.router, tags=["findings"])
router.include_router(attachments.router, tags=["attachments"])
router.include_router(messages.router, tags=["messages"])
router.include_router(reports.router, tags=["reports"])
