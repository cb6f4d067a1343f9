# models/deliverable.py
from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal, List
from datetime import datetime, timezone
import uuid

DeliverableType = Literal['image', 'video', 'document', 'link', 'carousel']
DeliverableStatus = Literal['pending', 'approved', 'changes_requested']
DeliverablePriority = Literal['low', 'normal', 'high', 'urgent']


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


class FeedbackEntry(BaseModel):
    # Append-only: entries are never edited or removed once stored
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    date: str = Field(default_factory=utc_now_iso)
    comment: str
    author: Literal['client', 'team'] = 'team'
    authorName: Optional[str] = None
    version: Optional[int] = None


class DeliverableVersion(BaseModel):
    version: int
    url: str
    carouselUrls: Optional[List[str]] = None
    createdAt: str = Field(default_factory=utc_now_iso)
    createdBy: Optional[str] = None
    notes: Optional[str] = None


class DeliverableModel(BaseModel):
    id: str
    title: str = ""
    clientId: Optional[str] = None
    clientName: str = "Cliente"
    type: str = 'image'
    url: str = ""
    carouselUrls: Optional[List[str]] = None
    status: DeliverableStatus = 'pending'
    createdAt: Optional[str] = None
    feedback: List[dict] = Field(default_factory=list)
    description: Optional[str] = None

    currentVersion: int = 1
    versions: List[dict] = Field(default_factory=list)
    deadline: Optional[str] = None
    priority: Optional[str] = None
    assignedTo: Optional[str] = None
    approvedAt: Optional[str] = None
    approvedVersion: Optional[int] = None

    pending_sync: bool = False

    model_config = ConfigDict(
        populate_by_name=True,
        extra='ignore'
    )


class DeliverableCreate(BaseModel):
    title: str = Field(min_length=1)
    clientId: Optional[str] = None
    clientName: Optional[str] = None
    type: DeliverableType = 'image'
    url: str = ""
    carouselUrls: Optional[List[str]] = None
    description: Optional[str] = None
    deadline: Optional[str] = None
    priority: Optional[DeliverablePriority] = None
    assignedTo: Optional[str] = None


class FeedbackInput(BaseModel):
    comment: str = Field(min_length=1)
    author: Literal['client', 'team'] = 'team'
    authorName: Optional[str] = None


class DeliverableReview(BaseModel):
    status: DeliverableStatus
    feedback: Optional[FeedbackInput] = None


class DeliverableVersionCreate(BaseModel):
    url: str = Field(min_length=1)
    carouselUrls: Optional[List[str]] = None
    notes: Optional[str] = None
