"""
Custom exceptions for the Campus Events engine.
"""

from typing import Any, Dict, Optional, List
from enum import Enum


class ErrorCode(str, Enum):
    """Standard error codes for the engine."""

    # General errors
    INTERNAL_ERROR = "INTERNAL_ERROR"
    VALIDATION_ERROR = "VALIDATION_ERROR"
    INVALID_CAPACITY = "INVALID_CAPACITY"
    NOT_FOUND = "NOT_FOUND"
    FORBIDDEN = "FORBIDDEN"

    # Scheduling conflicts
    VENUE_CONFLICT = "VENUE_CONFLICT"
    RESOURCE_CONFLICT = "RESOURCE_CONFLICT"

    # Seat ledger errors
    EVENT_FULL = "EVENT_FULL"
    ALREADY_BOOKED = "ALREADY_BOOKED"
    ALREADY_WAITLISTED = "ALREADY_WAITLISTED"
    SELF_BOOKING_FORBIDDEN = "SELF_BOOKING_FORBIDDEN"
    SELF_JOIN_FORBIDDEN = "SELF_JOIN_FORBIDDEN"
    VOLUNTEER_CANNOT_BOOK = "VOLUNTEER_CANNOT_BOOK"
    BELOW_BOOKED = "BELOW_BOOKED"

    # Volunteer roster errors
    ROLE_TAKEN = "ROLE_TAKEN"
    ROLE_PENDING = "ROLE_PENDING"
    PENDING_REQUEST_EXISTS = "PENDING_REQUEST_EXISTS"
    ALREADY_VOLUNTEER = "ALREADY_VOLUNTEER"
    ORGANIZER_CANNOT_VOLUNTEER = "ORGANIZER_CANNOT_VOLUNTEER"
    BOOKING_HELD = "BOOKING_HELD"

    # Temporal errors
    EVENT_LIVE = "EVENT_LIVE"
    EVENT_ENDED = "EVENT_ENDED"

    # Concurrency errors
    CONCURRENCY_CONFLICT = "CONCURRENCY_CONFLICT"
    OPTIMISTIC_LOCK_FAILURE = "OPTIMISTIC_LOCK_FAILURE"
    LOCK_UNAVAILABLE = "LOCK_UNAVAILABLE"

    # Persistence errors
    PERSISTENCE_ERROR = "PERSISTENCE_ERROR"


class CampusEventsError(Exception):
    """Base exception class for the Campus Events engine."""

    # When set, the unit of work still persists the snapshot (and the
    # notifications emitted so far) before the error propagates.
    persist_side_effects: bool = False

    def __init__(
        self,
        message: str,
        error_code: ErrorCode = ErrorCode.INTERNAL_ERROR,
        details: Optional[Dict[str, Any]] = None,
        suggestions: Optional[List[str]] = None,
        retry_after: Optional[int] = None
    ):
        """Initialize the exception with comprehensive error information."""
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        self.suggestions = suggestions or []
        self.retry_after = retry_after
        super().__init__(self.message)

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for API responses."""
        result = {
            "error_code": self.error_code.value,
            "message": self.message,
        }

        if self.details:
            result["details"] = self.details

        if self.suggestions:
            result["suggestions"] = self.suggestions

        if self.retry_after:
            result["retry_after"] = self.retry_after

        return result


class ValidationError(CampusEventsError):
    """Exception raised for validation errors."""

    def __init__(self, message: str, field_errors: Optional[Dict[str, List[str]]] = None, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.VALIDATION_ERROR)
        kwargs.setdefault("details", {"field_errors": field_errors} if field_errors else None)
        super().__init__(message, **kwargs)
        self.field_errors = field_errors or {}


class InvalidCapacityError(ValidationError):
    """Exception raised when a capacity is not a positive integer."""

    def __init__(self, capacity: Any, **kwargs):
        super().__init__(
            "Capacity must be a positive number.",
            error_code=ErrorCode.INVALID_CAPACITY,
            details={"capacity": capacity},
            **kwargs
        )


class StartNotInFutureError(ValidationError):
    """Exception raised when an event start is not strictly in the future."""

    def __init__(self, start: str, **kwargs):
        super().__init__(
            "Event date and time must be in the future.",
            field_errors={"start": [f"{start} is not in the future"]},
            **kwargs
        )


class NotFoundError(CampusEventsError):
    """Base exception for resource not found errors."""

    def __init__(self, message: str, resource_type: Optional[str] = None, resource_id: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.NOT_FOUND,
            details={"resource_type": resource_type, "resource_id": resource_id} if resource_type else None,
            **kwargs
        )


class EventNotFoundError(NotFoundError):
    """Exception raised when an event is not found."""

    def __init__(self, event_id: str, **kwargs):
        super().__init__(
            f"Event {event_id} not found",
            resource_type="event",
            resource_id=str(event_id),
            suggestions=["Check the event ID", "Browse available events"],
            **kwargs
        )


class UserNotFoundError(NotFoundError):
    """Exception raised when a user is not found."""

    def __init__(self, user_id: str, **kwargs):
        super().__init__(
            f"User {user_id} not found",
            resource_type="user",
            resource_id=user_id,
            **kwargs
        )


class BookingNotFoundError(NotFoundError):
    """Exception raised when a user holds no booking for an event."""

    def __init__(self, event_id: str, user_id: str, **kwargs):
        super().__init__(
            f"Booking for user {user_id} on event {event_id} not found",
            resource_type="booking",
            resource_id=f"{event_id}:{user_id}",
            suggestions=["View your tickets"],
            **kwargs
        )


class NotWaitlistedError(NotFoundError):
    """Exception raised when a user is not on an event waitlist."""

    def __init__(self, event_id: str, user_id: str, **kwargs):
        super().__init__(
            f"User {user_id} is not on the waitlist for event {event_id}",
            resource_type="waitlist_entry",
            resource_id=f"{event_id}:{user_id}",
            **kwargs
        )


class VolunteerNotFoundError(NotFoundError):
    """Exception raised when a user holds no volunteer slot on an event."""

    def __init__(self, event_id: str, user_id: str, **kwargs):
        super().__init__(
            f"Volunteer {user_id} not found on event {event_id}",
            resource_type="volunteer",
            resource_id=f"{event_id}:{user_id}",
            **kwargs
        )


class NoPendingRequestError(NotFoundError):
    """Exception raised when a user has no pending volunteer request."""

    def __init__(self, event_id: str, user_id: str, **kwargs):
        super().__init__(
            f"No pending volunteer request for user {user_id} on event {event_id}",
            resource_type="volunteer_request",
            resource_id=f"{event_id}:{user_id}",
            **kwargs
        )


class MediaNotFoundError(NotFoundError):
    """Exception raised when a media reference is not found."""

    def __init__(self, media_id: str, **kwargs):
        super().__init__(
            f"Media {media_id} not found",
            resource_type="media",
            resource_id=str(media_id),
            **kwargs
        )


class AuthorizationError(CampusEventsError):
    """Exception raised when a non-creator attempts a creator-only action."""

    def __init__(self, message: str = "Access denied", required_permission: Optional[str] = None, **kwargs):
        super().__init__(
            message,
            error_code=ErrorCode.FORBIDDEN,
            details={"required_permission": required_permission} if required_permission else None,
            **kwargs
        )


class ConflictError(CampusEventsError):
    """Base exception for allocation conflicts and business rule violations."""
    pass


class VenueConflictError(ConflictError):
    """Exception raised when a venue is already booked for an overlapping window."""

    def __init__(self, venue: str, conflicting_event_id: str, **kwargs):
        super().__init__(
            "Slot is booked! This venue is already booked for that time and date.",
            error_code=ErrorCode.VENUE_CONFLICT,
            details={"venue": venue, "conflicting_event_id": conflicting_event_id},
            suggestions=["Pick another time slot", "Pick another venue"],
            **kwargs
        )


class ResourceConflictError(ConflictError):
    """Exception raised when a declared resource is held by an overlapping event."""

    def __init__(self, resource: str, conflicting_event_id: Optional[str] = None, **kwargs):
        super().__init__(
            f"Resource conflict: '{resource}' is already booked for another event in this time window.",
            error_code=ErrorCode.RESOURCE_CONFLICT,
            details={"resource": resource, "conflicting_event_id": conflicting_event_id},
            **kwargs
        )


class EventFullError(ConflictError):
    """Exception raised when every seat of an event is taken."""

    persist_side_effects = True

    def __init__(self, event_id: str, capacity: int, **kwargs):
        super().__init__(
            "Venue is full",
            error_code=ErrorCode.EVENT_FULL,
            details={"event_id": event_id, "capacity": capacity, "taken": capacity},
            suggestions=["Join the waitlist"],
            **kwargs
        )


class AlreadyBookedError(ConflictError):
    """Exception raised when a user already holds a seat."""

    def __init__(self, event_id: str, user_id: str, **kwargs):
        super().__init__(
            "Ticket already booked for this event",
            error_code=ErrorCode.ALREADY_BOOKED,
            details={"event_id": event_id, "user_id": user_id},
            **kwargs
        )


class AlreadyWaitlistedError(ConflictError):
    """Exception raised when a user is already on the waitlist."""

    def __init__(self, event_id: str, user_id: str, **kwargs):
        super().__init__(
            "Already on waitlist.",
            error_code=ErrorCode.ALREADY_WAITLISTED,
            details={"event_id": event_id, "user_id": user_id},
            **kwargs
        )


class SelfBookingForbiddenError(ConflictError):
    """Exception raised when the creator tries to book their own event."""

    def __init__(self, event_id: str, **kwargs):
        super().__init__(
            "You cannot book a ticket for your own event.",
            error_code=ErrorCode.SELF_BOOKING_FORBIDDEN,
            details={"event_id": event_id},
            **kwargs
        )


class SelfJoinForbiddenError(ConflictError):
    """Exception raised when the creator tries to join their own waitlist."""

    def __init__(self, event_id: str, **kwargs):
        super().__init__(
            "Organizer cannot join waitlist for own event.",
            error_code=ErrorCode.SELF_JOIN_FORBIDDEN,
            details={"event_id": event_id},
            **kwargs
        )


class VolunteerCannotBookError(ConflictError):
    """Exception raised when an accepted volunteer tries to take a seat."""

    def __init__(self, event_id: str, user_id: str, **kwargs):
        super().__init__(
            "Volunteers cannot book tickets for this event.",
            error_code=ErrorCode.VOLUNTEER_CANNOT_BOOK,
            details={"event_id": event_id, "user_id": user_id},
            **kwargs
        )


class BelowBookedError(ConflictError):
    """Exception raised when a capacity would drop below the booked seats."""

    def __init__(self, taken: int, requested: int, **kwargs):
        super().__init__(
            f"{taken} seats are booked, please set capacity more than booked tickets.",
            error_code=ErrorCode.BELOW_BOOKED,
            details={"taken": taken, "requested_capacity": requested},
            **kwargs
        )


class RoleTakenError(ConflictError):
    """Exception raised when a volunteer role is already held."""

    def __init__(self, event_id: str, role: str, **kwargs):
        super().__init__(
            f"Role '{role}' is already assigned to another volunteer.",
            error_code=ErrorCode.ROLE_TAKEN,
            details={"event_id": event_id, "role": role},
            **kwargs
        )


class RolePendingError(ConflictError):
    """Exception raised when a volunteer role already has a pending request."""

    def __init__(self, event_id: str, role: str, **kwargs):
        super().__init__(
            f"Role '{role}' already has a pending request.",
            error_code=ErrorCode.ROLE_PENDING,
            details={"event_id": event_id, "role": role},
            **kwargs
        )


class PendingRequestExistsError(ConflictError):
    """Exception raised when a user already has a pending volunteer request."""

    def __init__(self, event_id: str, user_id: str, **kwargs):
        super().__init__(
            "There is already a pending request for this user.",
            error_code=ErrorCode.PENDING_REQUEST_EXISTS,
            details={"event_id": event_id, "user_id": user_id},
            **kwargs
        )


class AlreadyVolunteerError(ConflictError):
    """Exception raised when a user already holds a volunteer slot."""

    def __init__(self, event_id: str, user_id: str, **kwargs):
        super().__init__(
            "User is already a volunteer for this event.",
            error_code=ErrorCode.ALREADY_VOLUNTEER,
            details={"event_id": event_id, "user_id": user_id},
            **kwargs
        )


class OrganizerCannotVolunteerError(ConflictError):
    """Exception raised when the creator is invited as a volunteer."""

    def __init__(self, event_id: str, **kwargs):
        super().__init__(
            "Organizer cannot be a volunteer.",
            error_code=ErrorCode.ORGANIZER_CANNOT_VOLUNTEER,
            details={"event_id": event_id},
            **kwargs
        )


class BookingHeldError(ConflictError):
    """Exception raised when a booked or waitlisted user accepts a volunteer role."""

    def __init__(self, event_id: str, user_id: str, **kwargs):
        super().__init__(
            "Users holding a ticket or waitlist entry cannot volunteer for this event.",
            error_code=ErrorCode.BOOKING_HELD,
            details={"event_id": event_id, "user_id": user_id},
            suggestions=["Cancel the ticket or leave the waitlist first"],
            **kwargs
        )


class TemporalError(CampusEventsError):
    """Base exception for operations forbidden by the event clock."""
    pass


class EventLiveError(TemporalError):
    """Exception raised when an event has already started."""

    def __init__(self, event_id: str, **kwargs):
        super().__init__(
            "Event is live or has passed.",
            error_code=ErrorCode.EVENT_LIVE,
            details={"event_id": event_id},
            **kwargs
        )


class EventEndedError(TemporalError):
    """Exception raised for volunteer actions on a started or past event."""

    def __init__(self, event_id: str, **kwargs):
        super().__init__(
            "This event has already started or passed.",
            error_code=ErrorCode.EVENT_ENDED,
            details={"event_id": event_id},
            **kwargs
        )


class ConcurrencyError(CampusEventsError):
    """Exception raised for concurrency-related issues."""

    def __init__(self, message: str, retry_after: int = 1, **kwargs):
        kwargs.setdefault("error_code", ErrorCode.CONCURRENCY_CONFLICT)
        kwargs.setdefault("suggestions", ["Please try again", "Wait a moment and retry"])
        super().__init__(
            message,
            retry_after=retry_after,
            **kwargs
        )


class OptimisticLockError(ConcurrencyError):
    """Exception raised when the stored snapshot changed since it was loaded."""

    def __init__(self, resource_type: str, resource_id: str, **kwargs):
        super().__init__(
            f"{resource_type} {resource_id} was modified by another transaction",
            details={"resource_type": resource_type, "resource_id": resource_id},
            error_code=ErrorCode.OPTIMISTIC_LOCK_FAILURE,
            **kwargs
        )


class LockUnavailableError(ConcurrencyError):
    """Exception raised when an event lock cannot be acquired in time."""

    def __init__(self, key: str, **kwargs):
        super().__init__(
            f"Could not acquire lock {key}, please try again.",
            details={"lock": key},
            error_code=ErrorCode.LOCK_UNAVAILABLE,
            **kwargs
        )


class PersistenceError(CampusEventsError):
    """Exception raised when the snapshot cannot be loaded or saved."""

    def __init__(self, message: str, **kwargs):
        super().__init__(
            f"Persistence failure: {message}",
            error_code=ErrorCode.PERSISTENCE_ERROR,
            **kwargs
        )
