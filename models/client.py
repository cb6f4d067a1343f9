# models/client.py
from pydantic import BaseModel, Field, ConfigDict, field_validator
from typing import Optional


class ClientModel(BaseModel):
    id: str
    name: str
    erpId: str
    token: str
    instagram: Optional[str] = None
    industry: Optional[str] = None
    contactPhone: Optional[str] = None
    createdAt: Optional[str] = None
    pending_sync: bool = False

    model_config = ConfigDict(
        populate_by_name=True,
        extra='ignore'
    )


class ClientCreate(BaseModel):
    name: str = Field(min_length=1)
    instagram: Optional[str] = None
    industry: Optional[str] = None
    contactPhone: Optional[str] = None

    @field_validator('name', 'industry', 'contactPhone', mode='before')
    @classmethod
    def strip_text(cls, v):
        if isinstance(v, str):
            return v.strip() or None
        return v

    @field_validator('instagram', mode='before')
    @classmethod
    def normalize_handle(cls, v):
        if isinstance(v, str):
            return v.replace('@', '').strip() or None
        return v


class ClientUpdate(ClientCreate):
    erpId: str = Field(min_length=1)
    name: Optional[str] = None
