import json
from typing import Any, Optional

from servicehub.common.models.users import Caller, UserRole
from servicehub.common.utils.custom_exceptions import (
    Unauthenticated,
    Unauthorized,
    ValidationError,
)


def caller_from_event(event: dict) -> Caller:
    """Builds the caller from the context the JWT authorizer attached to the request."""
    try:
        authorizer = event["requestContext"]["authorizer"]
        user_id = authorizer["user_id"]
    except (KeyError, TypeError):
        raise Unauthenticated("Unauthorized")

    try:
        role = UserRole(str(authorizer.get("role", "")).upper())
    except ValueError:
        raise Unauthorized("Unknown role")

    # authorizer context values arrive as strings
    is_active = str(authorizer.get("is_active", "true")).lower() != "false"
    if not is_active:
        raise Unauthorized("Account is deactivated")

    return Caller(user_id=user_id, role=role, is_active=is_active)


def path_param(event: dict, name: str) -> str:
    value = (event.get("pathParameters") or {}).get(name)
    if not value:
        raise ValidationError(f"Path parameter '{name}' is required")
    return value


def query_params(event: dict) -> dict:
    return dict(event.get("queryStringParameters") or {})


def json_body(event: dict, required: bool = True) -> Optional[Any]:
    body = event.get("body")
    if not body:
        if required:
            raise ValidationError("Request body is required")
        return None
    try:
        return json.loads(body)
    except json.JSONDecodeError:
        raise ValidationError("Invalid JSON body")
