"""Request dependencies: service-key guard, caller context and services."""

import hmac
import json
import logging

from fastapi import Depends, Header, HTTPException, Request
from pydantic import ValidationError

from ..config.factory import Services
from ..models import UserContext

logger = logging.getLogger(__name__)

ANONYMOUS_CONTEXT = {"user_id": "anonymous", "role": "SALESPERSON", "data_sensitivity": 1}


def get_services(request: Request) -> Services:
    return request.app.state.services


def require_service_key(
    x_service_key: str | None = Header(default=None),
    services: Services = Depends(get_services),
) -> None:
    """Reject requests without the shared service key.

    With no key configured every guarded route is closed.
    """
    expected = services.profile.api.service_key
    if not expected or not x_service_key:
        raise HTTPException(status_code=401, detail="Invalid or missing service key")
    if not hmac.compare_digest(x_service_key.encode(), expected.encode()):
        raise HTTPException(status_code=401, detail="Invalid or missing service key")


def get_user_context(x_user_context: str | None = Header(default=None)) -> UserContext:
    """
    Read the caller's precomputed context from the ``X-User-Context`` header.

    A missing or unreadable header, or one without ``user_id`` and ``role``,
    gives the anonymous context. A readable header with invalid values is
    rejected so a caller is never silently routed at the wrong sensitivity.
    """
    if not x_user_context:
        return UserContext(**ANONYMOUS_CONTEXT)

    try:
        parsed = json.loads(x_user_context)
    except ValueError:
        logger.warning("Unreadable X-User-Context header, using anonymous context")
        return UserContext(**ANONYMOUS_CONTEXT)

    if not isinstance(parsed, dict) or not parsed.get("user_id") or not parsed.get("role"):
        return UserContext(**ANONYMOUS_CONTEXT)

    sensitivity = parsed.get("data_sensitivity")
    try:
        return UserContext(
            user_id=parsed["user_id"],
            role=parsed["role"],
            data_sensitivity=1 if sensitivity is None else sensitivity,
            department=parsed.get("department"),
        )
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=f"Invalid X-User-Context: {e.errors()[0]['msg']}")
