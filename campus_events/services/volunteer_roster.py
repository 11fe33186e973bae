"""
Volunteer roster for one event.

Roles are exclusive: at most one accepted volunteer and at most one pending
request per role. Volunteer ids are ranks (``V01``, ``V02``...) re-derived from
list order whenever the roster changes.
"""

import logging
from typing import List, Union

from ..domain.records import (
    Event,
    RequestStatus,
    VolunteerRequest,
    VolunteerSlot,
    volunteer_id_for,
)
from ..utils.clock import Clock
from ..utils.exceptions import (
    AlreadyVolunteerError,
    AuthorizationError,
    BookingHeldError,
    EventEndedError,
    NoPendingRequestError,
    OrganizerCannotVolunteerError,
    PendingRequestExistsError,
    RolePendingError,
    RoleTakenError,
    ValidationError,
    VolunteerNotFoundError,
)
from .notification_service import Messages, NotificationEmitter

logger = logging.getLogger(__name__)

DECISIONS = ("accept", "reject")


class VolunteerRoster:
    """Exclusive-role volunteer assignment for a single event."""

    def __init__(self, event: Event, emitter: NotificationEmitter, clock: Clock):
        self.event = event
        self.emitter = emitter
        self.clock = clock

    @property
    def _event_id(self) -> str:
        return str(self.event.id)

    def _require_organizer(self, requester_id: str, action: str) -> None:
        if requester_id != self.event.creator_id:
            raise AuthorizationError(
                f"Only the organizer can {action}.",
                required_permission="event_creator"
            )

    def _require_not_started(self) -> None:
        if self.event.has_started(self.clock.now()):
            raise EventEndedError(self._event_id)

    def request_volunteer(self, organizer_id: str, user_id: str, role: str) -> VolunteerRequest:
        """
        Invite a user to take a role.

        Invitations to users who already hold a ticket are allowed here; the
        exclusivity check runs when the invitation is accepted.
        """
        event = self.event
        self._require_organizer(organizer_id, "add volunteers")
        self._require_not_started()

        role_name = (role or "").strip()
        if not role_name:
            raise ValidationError("Role is required.", field_errors={"role": ["must not be blank"]})
        if user_id == event.creator_id:
            raise OrganizerCannotVolunteerError(self._event_id)
        if event.volunteer_for(user_id):
            raise AlreadyVolunteerError(self._event_id, user_id)
        if event.pending_request_for_user(user_id):
            raise PendingRequestExistsError(self._event_id, user_id)
        if event.volunteer_with_role(role_name):
            raise RoleTakenError(self._event_id, role_name)
        if event.pending_request_for_role(role_name):
            raise RolePendingError(self._event_id, role_name)

        request = VolunteerRequest(user_id=user_id, role=role_name, requested_at=self.clock.now())
        event.volunteer_requests.append(request)
        self.emitter.push(
            user_id,
            Messages.volunteer_invited(event.title, role_name),
            {"type": "volunteer_request", "event_id": self._event_id, "role": role_name}
        )
        event.check_invariants()

        logger.info(f"User {user_id} invited to volunteer as '{role_name}' for event {event.id}")
        return request

    def respond(self, user_id: str, decision: str) -> Union[VolunteerSlot, VolunteerRequest]:
        """
        Accept or reject the user's pending invitation.

        Returns:
            The new volunteer slot on accept, the rejected request on reject

        Raises:
            ValidationError: Decision is neither accept nor reject
            NoPendingRequestError: The user has no pending invitation
            EventEndedError: The event has started
            RoleTakenError: The role was filled meanwhile (request is rejected)
            BookingHeldError: The user holds a ticket or waitlist entry
        """
        event = self.event
        if decision not in DECISIONS:
            raise ValidationError("Invalid decision", field_errors={"decision": [f"must be one of {DECISIONS}"]})
        request = event.pending_request_for_user(user_id)
        if request is None:
            raise NoPendingRequestError(self._event_id, user_id)
        self._require_not_started()

        if decision == "reject":
            request.status = RequestStatus.REJECTED
            self.emitter.push(user_id, Messages.volunteer_rejected(event.title, request.role))
            self.emitter.push(
                event.creator_id,
                Messages.volunteer_rejected_for_organizer(user_id, event.title, request.role)
            )
            logger.info(f"User {user_id} rejected volunteer role '{request.role}' for event {event.id}")
            return request

        if event.volunteer_with_role(request.role):
            request.status = RequestStatus.REJECTED
            error = RoleTakenError(self._event_id, request.role)
            error.persist_side_effects = True
            raise error
        if event.booking_for(user_id) or event.waitlist_entry_for(user_id):
            raise BookingHeldError(self._event_id, user_id)

        slot = VolunteerSlot(user_id=user_id, role=request.role, volunteer_id="")
        event.volunteers.append(slot)
        self._renumber()
        request.status = RequestStatus.ACCEPTED
        self.emitter.push(user_id, Messages.volunteer_accepted(event.title, request.role))
        self.emitter.push(
            event.creator_id,
            Messages.volunteer_accepted_for_organizer(user_id, event.title, request.role)
        )
        event.check_invariants()

        logger.info(f"User {user_id} accepted volunteer role '{request.role}' as {slot.volunteer_id}")
        return slot

    def remove(self, organizer_id: str, user_id: str) -> VolunteerSlot:
        """Drop an accepted volunteer and re-derive the remaining ids."""
        event = self.event
        self._require_organizer(organizer_id, "remove volunteers")
        slot = event.volunteer_for(user_id)
        if slot is None:
            raise VolunteerNotFoundError(self._event_id, user_id)

        event.volunteers.remove(slot)
        self._renumber()
        self.emitter.push(user_id, Messages.volunteer_removed(event.title))
        event.check_invariants()

        logger.info(f"Volunteer {user_id} removed from event {event.id}")
        return slot

    def listing(self) -> List[dict]:
        """Accepted volunteers followed by every request, for the organizer view."""
        accepted = [
            {"user_id": v.user_id, "role": v.role, "volunteer_id": v.volunteer_id, "status": RequestStatus.ACCEPTED.value}
            for v in self.event.volunteers
        ]
        requests = [
            {"user_id": r.user_id, "role": r.role, "volunteer_id": None, "status": r.status.value}
            for r in self.event.volunteer_requests
        ]
        return accepted + requests

    def _renumber(self) -> None:
        for rank, slot in enumerate(self.event.volunteers, start=1):
            slot.volunteer_id = volunteer_id_for(rank)
