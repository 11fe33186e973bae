"""
Venue and resource conflict detection for candidate events.

Both checks are pure functions over the snapshot's event list and report the
first conflict in list order.
"""

from datetime import date
from typing import Iterable, List, Optional, Tuple
from uuid import UUID

from ..domain.records import Event, as_utc
from ..domain.time_window import TimeWindow


def _others(existing: Iterable[Event], exclude_event_id: Optional[UUID]) -> Iterable[Event]:
    return (e for e in existing if exclude_event_id is None or e.id != exclude_event_id)


def check_venue_conflict(
    venue: str,
    window: TimeWindow,
    existing: Iterable[Event],
    exclude_event_id: Optional[UUID] = None,
) -> Optional[Event]:
    """
    Find an event at the same venue and UTC calendar date whose window overlaps.

    Args:
        venue: Venue of the candidate event
        window: Candidate time window
        existing: Events in snapshot order
        exclude_event_id: Event being edited, never a conflict with itself

    Returns:
        The first conflicting event, or None
    """
    candidate_date: date = as_utc(window.start).date()
    for event in _others(existing, exclude_event_id):
        if event.venue != venue or as_utc(event.start).date() != candidate_date:
            continue
        if window.overlaps(event.window):
            return event
    return None


def check_resource_conflict(
    resources: List[str],
    window: TimeWindow,
    existing: Iterable[Event],
    exclude_event_id: Optional[UUID] = None,
) -> Optional[Tuple[str, Event]]:
    """
    Find a declared resource already held by an overlapping event at any venue.

    Returns:
        ``(resource_name, event)`` for the first overlapping event sharing a
        resource, naming the first shared resource in the candidate's order.
    """
    if not resources:
        return None
    for event in _others(existing, exclude_event_id):
        if not window.overlaps(event.window):
            continue
        held = set(event.resources)
        for name in resources:
            if name in held:
                return name, event
    return None


class ConflictChecker:
    """Checks a candidate event against every other event in the snapshot."""

    def __init__(self, events: List[Event]):
        self.events = events

    def venue_conflict(self, candidate: Event, exclude_event_id: Optional[UUID] = None) -> Optional[Event]:
        return check_venue_conflict(candidate.venue, candidate.window, self.events, exclude_event_id)

    def resource_conflict(
        self, candidate: Event, exclude_event_id: Optional[UUID] = None
    ) -> Optional[Tuple[str, Event]]:
        return check_resource_conflict(candidate.resources, candidate.window, self.events, exclude_event_id)
