"""Business status state machine.

A business moves forward through a fixed order of statuses:

    discovered -> enriched -> website_generated -> deployed -> contacted -> sold

Store writes that complete a pipeline stage (inserting a website, recording a
deployment, logging outreach, refreshing details) advance the owning
business through ``apply_event``. Advances are monotonic: an event whose
target is not later than the current status leaves the status unchanged, so
re-running a stage never moves a business backwards.
"""

from enum import Enum

from .models.business import BusinessStatus

STATUS_ORDER: tuple[BusinessStatus, ...] = (
    BusinessStatus.DISCOVERED,
    BusinessStatus.ENRICHED,
    BusinessStatus.WEBSITE_GENERATED,
    BusinessStatus.DEPLOYED,
    BusinessStatus.CONTACTED,
    BusinessStatus.SOLD,
)

_RANK = {status: index for index, status in enumerate(STATUS_ORDER)}


class StoreEvent(str, Enum):
    """Store writes that cascade a status change onto the owning business."""

    BUSINESS_ENRICHED = "business_enriched"
    WEBSITE_INSERTED = "website_inserted"
    WEBSITE_DEPLOYED = "website_deployed"
    OUTREACH_LOGGED = "outreach_logged"


TRANSITIONS: dict[StoreEvent, BusinessStatus] = {
    StoreEvent.BUSINESS_ENRICHED: BusinessStatus.ENRICHED,
    StoreEvent.WEBSITE_INSERTED: BusinessStatus.WEBSITE_GENERATED,
    StoreEvent.WEBSITE_DEPLOYED: BusinessStatus.DEPLOYED,
    StoreEvent.OUTREACH_LOGGED: BusinessStatus.CONTACTED,
}


def status_rank(status: BusinessStatus) -> int:
    """Position of a status in the lifecycle, starting at 0."""
    return _RANK[BusinessStatus(status)]


def can_advance(current: BusinessStatus, target: BusinessStatus) -> bool:
    """Check whether moving from ``current`` to ``target`` is forward progress."""
    return status_rank(target) > status_rank(current)


def advance_status(current: BusinessStatus, target: BusinessStatus) -> BusinessStatus:
    """Return the status after attempting to move ``current`` to ``target``.

    Args:
        current: The business's present status.
        target: The status a completed stage would set.

    Returns:
        ``target`` if it is later in the lifecycle, otherwise ``current``.
    """
    if can_advance(current, target):
        return BusinessStatus(target)
    return BusinessStatus(current)


def cascade_target(event: StoreEvent) -> BusinessStatus:
    """Status a store event moves the owning business toward."""
    return TRANSITIONS[StoreEvent(event)]


def apply_event(current: BusinessStatus, event: StoreEvent) -> BusinessStatus:
    """Status of a business after ``event`` has been recorded for it."""
    return advance_status(current, cascade_target(event))
