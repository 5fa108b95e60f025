from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from typing import Generic, TypeVar, Optional

from servicehub.common.utils.custom_exceptions import BookingError

T = TypeVar("T")


class APIResponse(BaseModel, Generic[T]):
    status_code: int
    message: str
    data: Optional[T] = None
    error: Optional[str] = None


def send_custom_response(
    status_code: int,
    message: str,
    data: Optional[T] = None,
    error: Optional[str] = None,
):
    return {
        "statusCode": status_code,
        "headers": {
            "Content-Type": "application/json",
        },
        "body": APIResponse(
            status_code=status_code, message=message, data=data, error=error
        ).model_dump_json(),
    }


def send_error_response(err: BookingError):
    return send_custom_response(
        err.status_code, err.message, err.details or None, err.kind
    )


def send_validation_error(err: PydanticValidationError):
    formatted = "; ".join(f"{e['msg']}" for e in err.errors())
    return send_custom_response(400, formatted, error="ValidationError")
