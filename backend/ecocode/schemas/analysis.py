"""
EcoCodeAI Backend - Analysis Schemas
======================================

What:  Request model for POST /api/analyze.

The response is whatever JSON object the analysis service produced, so
there is no fixed response model. AnalysisMessage documents the shape the
Gemini provider returns and is used for the OpenAPI docs.
"""

from pydantic import BaseModel, Field


class AnalyzeRequest(BaseModel):
    """
    Code submission.

    Blank and oversized submissions are rejected by the route with 400 rather
    than here, so the client gets the same error envelope as other business
    rule failures.
    """
    code: str = Field(description="Source code to analyze")


class AnalysisMessage(BaseModel):
    """Typical analysis answer: one human-readable report."""
    message: str = Field(description="Analysis text produced by the analysis service")

    model_config = {"extra": "allow"}
