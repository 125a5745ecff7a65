"""
EcoCodeAI Backend - Liveness Route
====================================

GET / answers a fixed plain-text string without touching any dependency,
so it stays cheap enough for the most aggressive probes. Use /health for a
dependency-aware check.
"""

from fastapi import APIRouter
from fastapi.responses import PlainTextResponse

router = APIRouter(tags=["Health"])

LIVENESS_MESSAGE = "EcoCodeAI API is running"


@router.get(
    "/",
    response_class=PlainTextResponse,
    summary="Liveness probe",
)
async def root() -> str:
    return LIVENESS_MESSAGE
