import logging

from fastapi import HTTPException, status

from app.core.exceptions import (ConflictError, InvalidStateError,
                                 NotFoundError, ValidationError)
from app.schemas.state import UserState
from app.workflow.subscription import effective_plan

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    ConflictError: status.HTTP_409_CONFLICT,
    NotFoundError: status.HTTP_404_NOT_FOUND,
    InvalidStateError: status.HTTP_409_CONFLICT,
    ValidationError: status.HTTP_422_UNPROCESSABLE_ENTITY,
}


def to_http_exception(e: Exception) -> HTTPException:
    """Translate a workflow error into the HTTP error the client sees"""
    if isinstance(e, HTTPException):
        return e
    for error_type, status_code in ERROR_STATUS.items():
        if isinstance(e, error_type):
            return HTTPException(status_code=status_code, detail=str(e))
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=str(e)
    )


def serialize_user(user: UserState) -> dict:
    data = user.model_dump(mode="json")
    data['effective_plan'] = effective_plan(user).value
    data['unread_notifications'] = user.unread_count
    return data
