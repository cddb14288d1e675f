"""Common error classes and utilities"""

from fastapi import HTTPException


class NotFoundError(HTTPException):
    """Requested resource does not exist"""
    def __init__(self, detail: str = "Not found"):
        super().__init__(status_code=404, detail=detail)


class GoneError(HTTPException):
    """Resource existed but is no longer available"""
    def __init__(self, detail: str = "Resource has expired"):
        super().__init__(status_code=410, detail=detail)


class ExternalServiceError(HTTPException):
    """External service integration errors"""
    def __init__(self, service: str, detail: str = "External service unavailable"):
        super().__init__(status_code=503, detail=f"{service}: {detail}")


class ValidationError(HTTPException):
    """Request validation errors"""
    def __init__(self, detail: str = "Invalid request"):
        super().__init__(status_code=400, detail=detail)
