"""Pydantic models for tailoring requests and model responses.

Field names are snake_case in Python and camelCase on the wire, matching the
JSON contracts the prompts ask the model to honor.
"""

from __future__ import annotations

from datetime import date
from enum import StrEnum

from pydantic import BaseModel, ConfigDict, EmailStr, Field, HttpUrl
from pydantic.alias_generators import to_camel


class WireModel(BaseModel):
    """Base model: camelCase aliases, population by name, extras ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        validate_by_name=True,
        validate_by_alias=True,
        serialize_by_alias=True,
        extra="ignore",
    )


# --- Job analysis ---


class WorkType(StrEnum):
    REMOTE = "Remote"
    HYBRID = "Hybrid"
    ON_SITE = "On-site"


class ExperienceLevel(StrEnum):
    ENTRY = "Entry"
    JUNIOR = "Junior"
    MID = "Mid"
    SENIOR = "Senior"
    LEAD = "Lead"
    EXECUTIVE = "Executive"


class JobAnalysisRequest(WireModel):
    """Job offer submitted for analysis."""

    job_offer: str = Field(min_length=10, description="Raw job offer text")
    company: str | None = None
    position: str | None = None
    additional_context: str | None = None


class AtsKeywords(WireModel):
    matched: list[str]
    missing: list[str]
    recommended: list[str]


class AtsOptimization(WireModel):
    """ATS match report, present when a CV accompanied the analysis."""

    score: float = Field(ge=0, le=100)
    adaptation_needed: bool
    keywords: AtsKeywords
    suggestions: list[str]


class JobAnalysis(WireModel):
    """Structured analysis of a job offer."""

    required_skills: list[str]
    preferred_skills: list[str]
    responsibilities: list[str]
    requirements: list[str]
    benefits: list[str] | None = None
    salary_range: str | None = None
    work_location: str | None = None
    work_type: WorkType | None = None
    experience_level: ExperienceLevel | None = None
    industry_keywords: list[str] = Field(default_factory=list)
    matching_score: float | None = Field(default=None, ge=0, le=100)
    suggestions: list[str] = Field(default_factory=list)
    ats_optimization: AtsOptimization | None = None


# --- CV ---


class Address(WireModel):
    street: str | None = None
    city: str = Field(min_length=1)
    state: str | None = None
    zip_code: str | None = None
    country: str = Field(min_length=1)


class PersonalInfo(WireModel):
    first_name: str = Field(min_length=1)
    last_name: str = Field(min_length=1)
    email: EmailStr
    phone: str | None = None
    address: Address | None = None
    linkedin: HttpUrl | None = None
    github: HttpUrl | None = None
    website: HttpUrl | None = None
    summary: str | None = None


class WorkExperience(WireModel):
    id: str = Field(min_length=1)
    company: str = Field(min_length=1)
    position: str = Field(min_length=1)
    start_date: date
    end_date: date | None = None
    is_current_position: bool = False
    location: str | None = None
    description: str = Field(min_length=1)
    achievements: list[str] = Field(default_factory=list)
    skills: list[str] = Field(default_factory=list)
    technologies: list[str] = Field(default_factory=list)


class Education(WireModel):
    id: str = Field(min_length=1)
    institution: str = Field(min_length=1)
    degree: str = Field(min_length=1)
    field: str = Field(min_length=1)
    start_date: date
    end_date: date | None = None
    is_current_education: bool = False
    gpa: float | None = None
    honors: list[str] = Field(default_factory=list)
    relevant_courses: list[str] = Field(default_factory=list)
    description: str | None = None


class SkillLevel(StrEnum):
    BEGINNER = "beginner"
    INTERMEDIATE = "intermediate"
    ADVANCED = "advanced"
    EXPERT = "expert"
    PROFESSIONAL = "professional"


class Skill(WireModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    level: SkillLevel
    category: str = Field(min_length=1)
    keywords: list[str] = Field(default_factory=list)
    years_of_experience: float | None = None


class Certification(WireModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    issuer: str = Field(min_length=1)
    issue_date: date
    expiry_date: date | None = None
    credential_id: str | None = None
    verification_url: HttpUrl | None = None
    description: str | None = None


class Project(WireModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = Field(min_length=1)
    start_date: date
    end_date: date | None = None
    is_current_project: bool = False
    technologies: list[str] = Field(default_factory=list)
    role: str | None = None
    team_size: int | None = None
    achievements: list[str] = Field(default_factory=list)
    url: HttpUrl | None = None
    github: HttpUrl | None = None


class LanguageLevel(StrEnum):
    BASIC = "basic"
    CONVERSATIONAL = "conversational"
    PROFESSIONAL = "professional"
    NATIVE = "native"


class Language(WireModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    level: LanguageLevel
    certifications: list[str] = Field(default_factory=list)


class CVData(WireModel):
    """A complete CV, as loaded from storage or returned after adaptation."""

    id: str = Field(min_length=1)
    personal_info: PersonalInfo
    work_experiences: list[WorkExperience] = Field(default_factory=list)
    education: list[Education] = Field(default_factory=list)
    skills: list[Skill] = Field(default_factory=list)
    certifications: list[Certification] = Field(default_factory=list)
    projects: list[Project] = Field(default_factory=list)
    languages: list[Language] = Field(default_factory=list)
    created_at: date
    updated_at: date
    version: str = Field(min_length=1)


# --- Cover letter ---


class Tone(StrEnum):
    PROFESSIONAL = "Professional"
    FRIENDLY = "Friendly"
    ENTHUSIASTIC = "Enthusiastic"
    FORMAL = "Formal"


class CoverLetterRequest(WireModel):
    cv: CVData = Field(alias="cvData")
    job_analysis: JobAnalysis
    personal_message: str | None = None
    tone: Tone = Tone.PROFESSIONAL


class CoverLetter(WireModel):
    """Generated cover letter, split into the parts templates render."""

    subject: str = Field(min_length=1)
    greeting: str = Field(min_length=1)
    paragraphs: list[str] = Field(min_length=1)
    closing: str = Field(min_length=1)
    signature: str = Field(min_length=1)
