from pydantic import BaseModel, Field, ConfigDict
from typing import Optional, Literal, List

TaskState = Literal['Open', 'Working', 'Pending Review', 'Overdue', 'Completed', 'Cancelled']
TaskPriority = Literal['Low', 'Medium', 'High', 'Urgent']


class TeamTaskModel(BaseModel):
    id: str
    title: str = ""
    description: Optional[str] = None
    status: str = 'Open'
    priority: str = 'Medium'
    dueDate: Optional[str] = None
    assignedTo: List[str] = Field(default_factory=list)
    project: Optional[str] = None
    pending_sync: bool = False

    model_config = ConfigDict(populate_by_name=True, extra='ignore')


class TeamTaskCreate(BaseModel):
    title: str = Field(min_length=1)
    description: Optional[str] = None
    status: TaskState = 'Open'
    priority: TaskPriority = 'Medium'
    dueDate: Optional[str] = None
    assignedTo: List[str] = Field(default_factory=list)
    project: Optional[str] = None


class TeamTaskUpdate(BaseModel):
    id: str = Field(min_length=1)
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[TaskState] = None
    priority: Optional[TaskPriority] = None
    dueDate: Optional[str] = None
    assignedTo: Optional[List[str]] = None


class TaskComment(BaseModel):
    id: str
    content: str = ""
    author: str = ""
    createdAt: Optional[str] = None


class TaskCommentCreate(BaseModel):
    content: str = Field(min_length=1)
