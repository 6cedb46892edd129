"""Schema contract and the pydantic models for tailoring payloads."""

from cv_tailor.schemas.contract import (
    Invalid,
    PydanticSchema,
    SchemaContract,
    SchemaIssue,
    Valid,
    ValidationOutcome,
    as_schema,
    issues_from_validation_error,
)
from cv_tailor.schemas.models import (
    AtsOptimization,
    CoverLetter,
    CoverLetterRequest,
    CVData,
    ExperienceLevel,
    JobAnalysis,
    JobAnalysisRequest,
    Tone,
    WorkType,
)

JOB_ANALYSIS_SCHEMA: PydanticSchema[JobAnalysis] = PydanticSchema(JobAnalysis)
CV_SCHEMA: PydanticSchema[CVData] = PydanticSchema(CVData)
COVER_LETTER_SCHEMA: PydanticSchema[CoverLetter] = PydanticSchema(CoverLetter)

__all__ = [  # noqa: RUF022
    # Contract
    "SchemaContract",
    "SchemaIssue",
    "Valid",
    "Invalid",
    "ValidationOutcome",
    "PydanticSchema",
    "as_schema",
    "issues_from_validation_error",
    # Models
    "JobAnalysisRequest",
    "JobAnalysis",
    "AtsOptimization",
    "CVData",
    "CoverLetterRequest",
    "CoverLetter",
    "Tone",
    "WorkType",
    "ExperienceLevel",
    # Prebuilt schemas
    "JOB_ANALYSIS_SCHEMA",
    "CV_SCHEMA",
    "COVER_LETTER_SCHEMA",
]
