"""Prompt builders for the three tailoring steps.

Each builder returns a ``PromptBundle``: a system message that pins the
output to JSON only, and a user message carrying the data. Optional sections
are omitted entirely when empty.
"""

from collections.abc import Sequence
import dataclasses
import json

from .schemas.models import CVData, JobAnalysis, JobAnalysisRequest, Tone

_JSON_ONLY = (
    "Respond with a single valid JSON object only. Do not include markdown "
    "formatting, explanations, or any other text outside the JSON object."
)


@dataclasses.dataclass(frozen=True, slots=True)
class PromptBundle:
    """System and user messages for one generation call."""

    system: str
    user: str


def _section(title: str, body: str | None) -> str | None:
    if body is None or not body.strip():
        return None
    return f"**{title}:**\n{body.strip()}"


def _join(*parts: str | None) -> str:
    return "\n\n".join(p for p in parts if p)


def build_job_analysis_prompt(
    request: JobAnalysisRequest,
    *,
    cv: CVData | None = None,
    context: str | None = None,
) -> PromptBundle:
    """Prompt for extracting requirements from a job offer.

    When ``cv`` is given, the model is also asked for an ATS match report
    (``atsOptimization``) comparing the CV against the offer.
    """
    role = "You are an expert HR analyst and career consultant."
    if cv is not None:
        role = "You are an expert in job offer analysis and ATS optimization."

    fields = [
        "requiredSkills: technical and soft skills stated as mandatory",
        "preferredSkills: skills that are a plus but not essential",
        "responsibilities: the main duties of the role",
        "requirements: education, experience, certifications and other qualifications",
        "experienceLevel: one of Entry, Junior, Mid, Senior, Lead, Executive",
        "industryKeywords: domain terms that help the CV pass ATS screening",
    ]
    if cv is not None:
        fields.append(
            "atsOptimization: {score (0-100), adaptationNeeded, "
            "keywords {matched, missing, recommended}, suggestions}"
        )

    user = _join(
        "Analyze the job offer below and extract the information needed to "
        "tailor a CV to it. Be precise, include explicit and implicit "
        "requirements, and focus on actionable insights.",
        _section("JOB OFFER TO ANALYZE", request.job_offer),
        _section("COMPANY", request.company),
        _section("POSITION", request.position),
        _section("ADDITIONAL CONTEXT", request.additional_context),
        _section("EXTRA CONTEXT", context),
        _section(
            "CANDIDATE CV",
            cv.model_dump_json(by_alias=True, exclude_none=True) if cv else None,
        ),
        _section("FIELDS", "\n".join(f"- {f}" for f in fields)),
    )
    return PromptBundle(system=f"{role} {_JSON_ONLY}", user=user)


def build_cv_adaptation_prompt(
    cv: CVData,
    analysis: JobAnalysis,
    focus_areas: Sequence[str] = (),
    *,
    context: str | None = None,
) -> PromptBundle:
    """Prompt for rewriting work experience to surface the job's keywords."""
    job_keywords = {
        "requiredSkills": analysis.required_skills,
        "preferredSkills": analysis.preferred_skills,
        "industryKeywords": analysis.industry_keywords,
    }
    rules = "\n".join(
        f"- {rule}"
        for rule in (
            "Rewrite work experience descriptions and achievements only.",
            "Work job keywords in where they fit naturally; never force them.",
            "Never invent experience, skills, employers, or dates.",
            "Keep every id, date, and field not mentioned above unchanged.",
            "Return the complete CV using the same JSON structure as the input.",
        )
    )
    user = _join(
        "Tailor the CV below to the target job.",
        _section("RULES", rules),
        _section("JOB KEYWORDS", json.dumps(job_keywords, ensure_ascii=False)),
        _section("FOCUS AREAS", ", ".join(focus_areas) if focus_areas else None),
        _section("EXTRA CONTEXT", context),
        _section("CV", cv.model_dump_json(by_alias=True, exclude_none=True)),
    )
    return PromptBundle(
        system=f"You are an expert CV optimization consultant. {_JSON_ONLY}",
        user=user,
    )


def build_cover_letter_prompt(
    cv: CVData,
    analysis: JobAnalysis,
    *,
    tone: Tone = Tone.PROFESSIONAL,
    personal_message: str | None = None,
) -> PromptBundle:
    """Prompt for a cover letter split into subject, greeting, body and sign-off."""
    info = cv.personal_info
    candidate = {
        "name": f"{info.first_name} {info.last_name}",
        "summary": info.summary,
        "recentPositions": [
            f"{exp.position} at {exp.company}" for exp in cv.work_experiences[:3]
        ],
        "skills": [skill.name for skill in cv.skills],
    }
    user = _join(
        f"Write a cover letter in a {tone.value.lower()} tone for the candidate "
        "below, targeting the analyzed job. Three to four body paragraphs; "
        "connect concrete experience to the job's required skills.",
        _section("CANDIDATE", json.dumps(candidate, ensure_ascii=False)),
        _section(
            "JOB ANALYSIS",
            analysis.model_dump_json(by_alias=True, exclude_none=True),
        ),
        _section("PERSONAL MESSAGE", personal_message),
        _section(
            "OUTPUT FIELDS",
            "subject, greeting, paragraphs (list of strings), closing, signature",
        ),
    )
    return PromptBundle(
        system=f"You are an expert career coach and cover letter writer. {_JSON_ONLY}",
        user=user,
    )


_MIN_PROMPT_LENGTH = 100
_MAX_PROMPT_LENGTH = 10_000

# Wire-format field names each step's prompt must mention.
_REQUIRED_MARKERS: dict[str, tuple[tuple[str, ...], str]] = {
    "job_analysis": (
        ("requiredSkills", "preferredSkills"),
        "Job analysis prompt is missing the skill extraction fields",
    ),
    "job_analysis_with_ats": (
        ("requiredSkills", "preferredSkills", "atsOptimization"),
        "ATS analysis prompt is missing the skill or match report fields",
    ),
    "cv_adaptation": (
        ("requiredSkills", "industryKeywords"),
        "CV adaptation prompt is missing the job keywords",
    ),
    "cover_letter": (
        ("tone", "paragraphs"),
        "Cover letter prompt is missing its formatting requirements",
    ),
}


def validate_prompt(
    step: str,
    bundle: PromptBundle,
    *,
    max_length: int = _MAX_PROMPT_LENGTH,
) -> list[str]:
    """Sanity-check a built prompt and return the problems found.

    An empty list means the prompt looks usable. The checks are advisory:
    overall length, an explicit JSON instruction, and the fields the step's
    response schema depends on.

    Raises:
        ValueError: If ``step`` is not a known tailoring step.
    """
    if step not in _REQUIRED_MARKERS:
        raise ValueError(
            f"Unknown step {step!r}; expected one of {sorted(_REQUIRED_MARKERS)}"
        )
    text = _join(bundle.system, bundle.user)
    issues: list[str] = []
    if len(text) < _MIN_PROMPT_LENGTH:
        issues.append("Prompt is too short to give the model enough context")
    if len(text) > max_length:
        issues.append(
            f"Prompt is {len(text)} characters, above {max_length}; "
            "it may exceed the model's token limit"
        )
    if "JSON" not in text:
        issues.append("Prompt does not ask for JSON output")
    markers, message = _REQUIRED_MARKERS[step]
    if not all(marker in text for marker in markers):
        issues.append(message)
    return issues
