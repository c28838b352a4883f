from pydantic import BaseModel, EmailStr, Field, computed_field, field_validator
from typing import Optional, List, Any, Literal, Union, Annotated
from datetime import datetime
from enum import Enum

from app.modules.workshops.catalog import StepKind

WorkshopStatus = Literal["in_progress", "completed"]


class Workshop(BaseModel):
    id: str
    name: str
    created_by: str
    workspace_id: Optional[str] = None
    participants: List[str] = Field(default_factory=list)
    is_public: bool = False
    share_token: Optional[str] = None
    status: WorkshopStatus = "in_progress"
    current_step: int = 0
    total_steps: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Step(BaseModel):
    id: str
    step_number: int
    name: str
    content: Any = Field(default_factory=dict)
    is_locked: bool = False
    is_counted: bool = True
    updated_at: Optional[datetime] = None

    @computed_field
    @property
    def kind(self) -> StepKind:
        return StepKind.for_name(self.name)

    @property
    def counts_toward_progress(self) -> bool:
        return self.is_counted and self.kind.counted

    class Config:
        from_attributes = True


class WorkshopCreate(BaseModel):
    name: str = "New Workshop"
    workspace_id: Optional[str] = None
    participants: List[EmailStr] = Field(default_factory=list)
    request_id: Optional[str] = None  # Client latch: repeated requests with the same id create one workshop

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Workshop name cannot be empty")
        return value.strip()


class WorkshopRename(BaseModel):
    name: str

    @field_validator("name")
    @classmethod
    def name_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Workshop name cannot be empty")
        return value.strip()


class NavigateToStep(BaseModel):
    type: Literal["step"] = "step"
    step_id: str


class NavigateNext(BaseModel):
    type: Literal["next"] = "next"


class NavigatePrevious(BaseModel):
    type: Literal["previous"] = "previous"


class NavigateBack(BaseModel):
    """Leave the workshop and return to the previous screen."""
    type: Literal["back"] = "back"


NavigationAction = Annotated[
    Union[NavigateToStep, NavigateNext, NavigatePrevious, NavigateBack],
    Field(discriminator="type"),
]


class Decision(str, Enum):
    SAVE = "save"
    DISCARD = "discard"
    CANCEL = "cancel"


class StepContentEdit(BaseModel):
    content: Any


class NavigateRequest(BaseModel):
    action: NavigationAction


class DecisionRequest(BaseModel):
    decision: Decision


class Notice(BaseModel):
    title: str
    description: str
    variant: Literal["default", "destructive"] = "default"


class ProgressResponse(BaseModel):
    completed_count: int
    total_counted: int
    all_complete: bool
    status: WorkshopStatus


class SessionView(BaseModel):
    workshop: Workshop
    steps: List[Step]
    selected_step: Optional[Step] = None
    guard_state: str
    pending_action: Optional[NavigationAction] = None
    busy: bool = False
    closed: bool = False
    notices: List[Notice] = Field(default_factory=list)


class ReportStep(BaseModel):
    name: str
    step: int
    content: Any


class WorkshopReportData(BaseModel):
    title: str = "Workshop Report"
    workshop: str
    steps: List[ReportStep]
    status: WorkshopStatus
    progress: str
    participants: List[str]
    generated_at: datetime
