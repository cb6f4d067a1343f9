"""
Status translation between the app vocabularies and ERPNext Task statuses.

Content items:
    draft -> Open, pending_approval -> Pending Review,
    approved -> Completed, published -> Completed

`approved` and `published` collapse onto Completed, so the reverse map picks
`approved` as the canonical value. app -> remote -> app is idempotent, not the
identity, for published.

Deliverables keep their real status (pending / approved / changes_requested)
inside the JSON metadata. The Task status is only an approximation of it.
"""

from typing import Any, Callable, Dict, Iterable, Optional

from constants import TaskStatus

# --- Content grid ---

CONTENT_STATUSES = ["draft", "pending_approval", "approved", "published"]
DEFAULT_CONTENT_STATUS = "draft"

CONTENT_TO_REMOTE = {
    "draft": TaskStatus.OPEN,
    "pending_approval": TaskStatus.PENDING_REVIEW,
    "approved": TaskStatus.COMPLETED,
    "published": TaskStatus.COMPLETED,
}

REMOTE_TO_CONTENT = {
    TaskStatus.OPEN: "draft",
    TaskStatus.WORKING: "draft",
    TaskStatus.PENDING_REVIEW: "pending_approval",
    TaskStatus.OVERDUE: "draft",
    TaskStatus.COMPLETED: "approved",
    TaskStatus.CANCELLED: "draft",
}


def content_to_remote(status: Optional[str]) -> str:
    return CONTENT_TO_REMOTE.get(status, TaskStatus.OPEN)


def content_from_remote(status: Optional[str]) -> str:
    return REMOTE_TO_CONTENT.get(status, DEFAULT_CONTENT_STATUS)


# --- Deliverables ---

DELIVERABLE_STATUSES = ["pending", "approved", "changes_requested"]
DEFAULT_DELIVERABLE_STATUS = "pending"


def deliverable_to_remote(status: Optional[str]) -> str:
    """Only approval closes the Task. Everything else keeps it Open."""
    return TaskStatus.COMPLETED if status == "approved" else TaskStatus.OPEN


def deliverable_from_remote(status: Optional[str]) -> str:
    return "approved" if status == TaskStatus.COMPLETED else DEFAULT_DELIVERABLE_STATUS


Resolver = Callable[[], Optional[str]]


def resolve_status(resolvers: Iterable[Resolver], default: str) -> str:
    """Ordered resolution: first resolver returning a non-None value wins."""
    for resolver in resolvers:
        value = resolver()
        if value is not None:
            return value
    return default


def resolve_deliverable_status(metadata: Dict[str, Any], remote_status: Optional[str]) -> str:
    """
    1. app_status embedded in metadata, when it is a known value
    2. derived from the Task status
    3. pending
    """
    def from_metadata():
        value = metadata.get("app_status") if isinstance(metadata, dict) else None
        return value if value in DELIVERABLE_STATUSES else None

    def from_remote():
        return deliverable_from_remote(remote_status) if remote_status else None

    return resolve_status([from_metadata, from_remote], DEFAULT_DELIVERABLE_STATUS)
