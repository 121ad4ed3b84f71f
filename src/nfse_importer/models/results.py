"""
Models for submission and batch run results.
"""
from datetime import datetime
from typing import List, Optional

from pydantic import BaseModel, Field

from .document import Job, JobStatus


class SubmissionResult(BaseModel):
    """Outcome of adding files to the queue"""
    accepted: List[Job] = Field(default_factory=list)
    rejected: int = 0
    limit: int = 100

    @property
    def message(self) -> Optional[str]:
        if not self.rejected:
            return None
        if not self.accepted:
            return f"Limite de {self.limit} PDFs atingido."
        return f"{self.rejected} arquivo(s) excederam o limite de {self.limit}."


class JobOutcome(BaseModel):
    """What one run did with one job"""
    job_id: str
    filename: str
    status: JobStatus
    record_count: int = 0
    error_message: Optional[str] = None


class BatchSummary(BaseModel):
    """Result of one orchestrator run"""
    outcomes: List[JobOutcome] = Field(default_factory=list)
    cancelled: bool = False
    start_time: datetime = Field(default_factory=datetime.now)
    end_time: Optional[datetime] = None

    def _count(self, status: JobStatus) -> int:
        return sum(1 for o in self.outcomes if o.status == status)

    @property
    def successful(self) -> int:
        return self._count(JobStatus.OK)

    @property
    def failed(self) -> int:
        return self._count(JobStatus.ERROR)

    @property
    def skipped(self) -> int:
        return self._count(JobStatus.SKIPPED)

    @property
    def total_time_seconds(self) -> float:
        if self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return 0.0

    def finalize(self):
        self.end_time = datetime.now()


class ProgressUpdate(BaseModel):
    """Progress event for one job"""
    job_id: str
    filename: str
    status: JobStatus
    progress: int
    message: str = ""
