"""
Pydantic models for the Inbox Responder service
"""
from datetime import datetime
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


# Email Models
class EmailRecord(BaseModel):
    """Plain email record extracted from a Gmail message"""
    from_address: str = ""
    to_address: str = ""
    subject: str = "No Subject"
    body: str = ""


# Processing Models
class StepStatus(str, Enum):
    """Outcome of a single processing step"""
    SUCCEEDED = "succeeded"
    SKIPPED = "skipped"
    FAILED = "failed"


class StepResult(BaseModel):
    """Result of one step in the incoming email sequence"""
    step: str
    status: StepStatus
    detail: Optional[str] = None


class ProcessingReport(BaseModel):
    """Per-step outcomes for one processed email"""
    message_id: str
    category: Optional[str] = None
    label_id: Optional[str] = None
    steps: List[StepResult] = Field(default_factory=list)

    def record(self, step: str, status: StepStatus, detail: Optional[str] = None) -> None:
        self.steps.append(StepResult(step=step, status=status, detail=detail))

    def status_of(self, step: str) -> Optional[StepStatus]:
        for result in self.steps:
            if result.step == step:
                return result.status
        return None

    @property
    def succeeded(self) -> bool:
        return all(result.status != StepStatus.FAILED for result in self.steps)


# API Models
class AccessTokenRequest(BaseModel):
    """Request to bind a Gmail session"""
    access_token: str = Field(..., min_length=1, description="OAuth2 access token for the Gmail API")


class CheckScheduledResponse(BaseModel):
    """Response after scheduling an unread check"""
    status: str
    delay_seconds: int


class CheckNowResponse(BaseModel):
    """Response after running an unread check in-process"""
    status: str
    enqueued: int


class TaskEnqueuedResponse(BaseModel):
    """Response after enqueueing a processing task"""
    status: str
    task: str
    message_id: str


class HealthCheckResponse(BaseModel):
    """Health check response"""
    status: str
    service: str = "inbox-responder"
    gmail_session_bound: bool = False
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    uptime_seconds: float
