from pydantic import BaseModel, ValidationInfo, field_validator
from enum import Enum
from typing import Any

class ReportType(str, Enum):
    medical_prescription = "medical-prescription"
    blood_test_report = "blood-test-report"

class UploadStatus(str, Enum):
    idle = "idle"
    uploading = "uploading"
    processing = "processing"
    ready = "ready"
    failed = "failed"

class ProcessingStatus(str, Enum):
    processing = "processing"
    completed = "completed"
    failed = "failed"

class RiskLevel(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"

class ReportFile(BaseModel):
    filename: str
    content_type: str
    content: bytes

    @property
    def size(self) -> int:
        return len(self.content)

class StatusReport(BaseModel):
    status: ProcessingStatus
    error: str | None = None

class AnalysisResult(BaseModel):
    summary: str = ""
    key_findings: dict[str, Any] = {}
    recommendations: list[str] = []
    insights: str | None = None
    medications: list[Any] | None = None

    @field_validator("summary", "key_findings", "recommendations", mode="before")
    @classmethod
    def _null_as_empty(cls, value: Any, info: ValidationInfo) -> Any:
        # Backend sends null for sections it could not extract
        if value is None:
            return {"summary": "", "key_findings": {}, "recommendations": []}[info.field_name]
        return value

    @property
    def risk_level(self) -> RiskLevel:
        from core.workflow.presentation import derive_risk_level
        return derive_risk_level(self.key_findings)

    @property
    def formatted_findings(self) -> list[str]:
        from core.workflow.presentation import format_key_findings
        return format_key_findings(self.key_findings)

class UploadJob(BaseModel):
    filename: str | None = None
    report_type: ReportType | None = None
    file_id: str | None = None
    status: UploadStatus = UploadStatus.idle
    poll_attempts: int = 0
    analysis_result: AnalysisResult | None = None
    is_analyzing: bool = False
    error: str | None = None

    @property
    def has_result(self) -> bool:
        return self.analysis_result is not None

    @property
    def show_preview(self) -> bool:
        return self.status == UploadStatus.ready and self.has_result

class DashboardHandoff(BaseModel):
    file_id: str
    fresh: bool = True
