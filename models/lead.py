from pydantic import BaseModel, Field, EmailStr, ConfigDict, field_validator
from typing import Optional, Literal, List

LeadStatus = Literal['Lead', 'Open', 'Replied', 'Opportunity', 'Quotation', 'Interested', 'Lost Lead']


class LeadModel(BaseModel):
    name: str
    lead_name: str = ""
    title: Optional[str] = None
    mobile_no: Optional[str] = None
    email_id: Optional[str] = None
    status: LeadStatus = 'Lead'
    creation: Optional[str] = None
    pipelineId: Optional[str] = None
    columnId: Optional[str] = None
    pending_sync: bool = False

    model_config = ConfigDict(
        populate_by_name=True,
        extra='ignore'
    )

    @field_validator('status', mode='before')
    @classmethod
    def unknown_status_to_lead(cls, v):
        # ERPNext allows statuses we do not show (Converted, Do Not Contact...)
        if v in ('Lead', 'Open', 'Replied', 'Opportunity', 'Quotation', 'Interested', 'Lost Lead'):
            return v
        return 'Lead'


class LeadStatusUpdate(BaseModel):
    name: str = Field(min_length=1)
    status: LeadStatus


class LeadNoteCreate(BaseModel):
    note: str = Field(min_length=1)


class LeadPositionUpdate(BaseModel):
    pipelineId: str
    columnId: str
    status: Optional[LeadStatus] = None


class TimelineEntry(BaseModel):
    name: str
    subject: Optional[str] = None
    content: Optional[str] = None
    communication_date: Optional[str] = None
    sender: Optional[str] = None


class LeadDetail(BaseModel):
    lead: LeadModel
    timeline: List[TimelineEntry] = Field(default_factory=list)


class InboundLead(BaseModel):
    """Website contact form. Field names follow the public form."""
    nombre: str = Field(min_length=1)
    email: EmailStr
    whatsapp: str = Field(min_length=1)
    institucion: Optional[str] = None
    tipoInstitucion: Optional[str] = None
    instagram: Optional[str] = None
    necesidad: Optional[str] = None
