"""
Common schemas for API responses and error handling.
"""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class ErrorDetail(BaseModel):
    """Schema for detailed error information."""

    error_code: str = Field(..., description="Error code for programmatic handling")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Dict[str, Any]] = Field(None, description="Additional error context")
    suggestions: Optional[List[str]] = Field(None, description="Helpful suggestions for resolving the error")
    retry_after: Optional[int] = Field(None, description="Seconds to wait before retrying")


class ErrorResponse(BaseModel):
    """Schema for API error responses."""

    error: ErrorDetail
    error_id: str
    timestamp: str

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [
                {
                    "error": {
                        "error_code": "EVENT_FULL",
                        "message": "Venue is full",
                        "details": {
                            "event_id": "123e4567-e89b-12d3-a456-426614174000",
                            "capacity": 40,
                            "taken": 40
                        },
                        "suggestions": ["Join the waitlist"]
                    },
                    "error_id": "0f8fad5b-d9cb-469f-a165-70867728950e",
                    "timestamp": "2025-03-01T10:00:00+00:00"
                },
                {
                    "error": {
                        "error_code": "RESOURCE_CONFLICT",
                        "message": "Resource conflict: 'projector' is already booked for another event in this time window.",
                        "details": {
                            "resource": "projector",
                            "conflicting_event_id": "7c9e6679-7425-40de-944b-e07fc1f90ae7"
                        }
                    },
                    "error_id": "e4eaaaf2-d142-11e1-b3e4-080027620cdd",
                    "timestamp": "2025-03-01T10:00:00+00:00"
                }
            ]
        }
    )


ERROR_RESPONSES: Dict[int, Dict[str, Any]] = {
    403: {"model": ErrorResponse, "description": "Creator-only action or event already started"},
    404: {"model": ErrorResponse, "description": "Unknown event, user or record"},
    409: {"model": ErrorResponse, "description": "Allocation conflict"},
    422: {"model": ErrorResponse, "description": "Invalid input"},
}
