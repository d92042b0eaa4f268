"""Pydantic models for the callable protocol envelopes.

Requests carry ``{"data": {...}}``; successes answer ``{"result": {...}}``
and failures ``{"error": {"status": ..., "message": ...}}``.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class CallableBody(BaseModel):
    data: dict[str, Any] = Field(default_factory=dict)


class CallableResponse(BaseModel):
    result: dict[str, Any] = Field(default_factory=dict)


class ErrorDetail(BaseModel):
    """Mirrors modcert.errors.ModcertError.to_dict()."""

    status: str
    message: str = ""


class ErrorResponse(BaseModel):
    error: ErrorDetail


class FunctionListResponse(BaseModel):
    functions: list[str] = Field(default_factory=list)
