from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional, Literal, List

Platform = Literal['instagram', 'facebook', 'tiktok', 'linkedin']
ContentType = Literal['post', 'reel', 'story', 'carousel']
GridStatus = Literal['draft', 'pending_approval', 'approved', 'published']


class ContentGridItemModel(BaseModel):
    """A planned piece of content. Decoded items keep whatever type/platform text the ERP holds."""
    id: str
    clientId: str
    date: Optional[str] = None
    platforms: List[str] = Field(default_factory=lambda: ['instagram'])
    type: str = 'post'
    concept: str = ""
    caption: Optional[str] = None
    notes: Optional[str] = None
    status: GridStatus = 'draft'
    pending_sync: bool = False

    model_config = ConfigDict(
        populate_by_name=True,
        extra='ignore'
    )


class ContentGridItemCreate(BaseModel):
    clientId: str = Field(min_length=1)
    date: Optional[str] = None  # YYYY-MM-DD
    platforms: List[Platform] = Field(default_factory=lambda: ['instagram'])
    type: ContentType = 'post'
    concept: str = Field(min_length=1)
    caption: Optional[str] = None
    notes: Optional[str] = None
    status: GridStatus = 'draft'

    @field_validator('caption', 'notes', mode='before')
    @classmethod
    def empty_str_to_none(cls, v):
        if v == "":
            return None
        return v


class ContentGridItemUpdate(ContentGridItemCreate):
    # Edits resend the whole item; the description is re-encoded from it
    clientId: Optional[str] = None
