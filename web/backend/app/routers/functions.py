"""Callable functions router.

Prefix: ``/api/functions``
"""

from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Request

from modcert.auth.models import AuthInfo, CallableRequest
from modcert.functions import Services, invoke, list_functions
from web.backend.app.middleware.auth import get_caller, get_services
from web.backend.app.models.api import (
    CallableBody,
    CallableResponse,
    ErrorResponse,
    FunctionListResponse,
)

router = APIRouter(prefix="/api/functions", tags=["functions"])


@router.get("", response_model=FunctionListResponse)
async def list_callables():
    """List the names of all registered callables."""
    return FunctionListResponse(functions=list_functions())


@router.post(
    "/{name}",
    response_model=CallableResponse,
    responses={
        400: {"model": ErrorResponse},
        401: {"model": ErrorResponse},
        403: {"model": ErrorResponse},
        404: {"model": ErrorResponse},
        429: {"model": ErrorResponse},
        500: {"model": ErrorResponse},
    },
)
def call_function(
    name: str,
    body: CallableBody,
    request: Request,
    caller: Optional[AuthInfo] = Depends(get_caller),
    services: Services = Depends(get_services),
):
    """Invoke callable *name* with the request body's ``data``."""
    callable_request = CallableRequest(
        auth=caller,
        data=body.data,
        ip_address=request.client.host if request.client else None,
    )
    return CallableResponse(result=invoke(name, callable_request, services))
