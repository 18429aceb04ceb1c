from typing import Optional
from fastapi import HTTPException, status


class NotFoundError(HTTPException):
    def __init__(self, resource: str = "Resource"):
        super().__init__(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"{resource} not found",
        )


class InvalidTransitionError(HTTPException):
    def __init__(self, current: str, requested: str):
        self.current = current
        self.requested = requested
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Cannot change status from '{current}' to '{requested}'",
        )


class FieldValidationError(HTTPException):
    """Field-level failure returned to the initiating screen."""

    def __init__(self, field: str, message: str):
        self.field = field
        super().__init__(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail={"field": field, "message": message},
        )


class ConflictError(HTTPException):
    def __init__(self, detail: Optional[str] = None):
        super().__init__(
            status_code=status.HTTP_409_CONFLICT,
            detail=detail or "The requested slot is already taken",
        )
