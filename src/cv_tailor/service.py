"""Tailoring workflow: prompt, call the model with retries, parse, validate.

``TailoringService`` is what an HTTP route handler calls. It owns no state
beyond its injected adapter and value-object settings, so one instance can
serve concurrent requests.
"""

from __future__ import annotations

from collections.abc import Sequence
import logging
from typing import TYPE_CHECKING, Any

from .core.exceptions import TailoringError
from .core.types import DEFAULT_PARSE_CONFIG, ParseConfig, RetryPolicy
from .prompts import (
    PromptBundle,
    build_cover_letter_prompt,
    build_cv_adaptation_prompt,
    build_job_analysis_prompt,
    validate_prompt,
)
from .resilience.retry import execute_with_retry
from .response.parser import parse_llm_json
from .response.types import ParseFailure
from .schemas import COVER_LETTER_SCHEMA, CV_SCHEMA, JOB_ANALYSIS_SCHEMA, PydanticSchema
from .telemetry import TelemetryContext, TelemetryContextProtocol

if TYPE_CHECKING:
    from .client.adapters import GenerationAdapter
    from .schemas.models import (
        CoverLetter,
        CoverLetterRequest,
        CVData,
        JobAnalysis,
        JobAnalysisRequest,
    )

log = logging.getLogger(__name__)


class TailoringService:
    """Runs the analysis, CV adaptation and cover letter steps."""

    def __init__(
        self,
        adapter: GenerationAdapter,
        *,
        retry_policy: RetryPolicy | None = None,
        parse_config: ParseConfig | None = None,
        telemetry: TelemetryContextProtocol | None = None,
    ) -> None:
        self._adapter = adapter
        self._retry_policy = retry_policy
        self._parse_config = parse_config or DEFAULT_PARSE_CONFIG
        self._telemetry = telemetry or TelemetryContext()

    async def analyze_job(
        self, request: JobAnalysisRequest, cv: CVData | None = None
    ) -> JobAnalysis:
        """Extract skills and requirements from a job offer.

        With a CV, the result also carries an ATS match report.
        """
        bundle = build_job_analysis_prompt(request, cv=cv)
        name = "job_analysis_with_ats" if cv is not None else "job_analysis"
        analysis = await self._run(name, bundle, JOB_ANALYSIS_SCHEMA)
        if cv is not None and analysis.ats_optimization is None:
            log.warning("Job analysis returned without the requested ATS report.")
        return analysis

    async def adapt_cv(
        self,
        cv: CVData,
        analysis: JobAnalysis,
        focus_areas: Sequence[str] = (),
    ) -> CVData:
        """Rewrite the CV's experience to match the analyzed job."""
        bundle = build_cv_adaptation_prompt(cv, analysis, focus_areas)
        return await self._run("cv_adaptation", bundle, CV_SCHEMA)

    async def generate_cover_letter(self, request: CoverLetterRequest) -> CoverLetter:
        """Write a cover letter for the CV and job in ``request``."""
        bundle = build_cover_letter_prompt(
            request.cv,
            request.job_analysis,
            tone=request.tone,
            personal_message=request.personal_message,
        )
        return await self._run("cover_letter", bundle, COVER_LETTER_SCHEMA)

    async def _run[T](
        self, name: str, bundle: PromptBundle, schema: PydanticSchema[T]
    ) -> T:
        json_schema: dict[str, Any] = schema.json_schema()
        if issues := validate_prompt(name, bundle):
            log.debug("Prompt for step '%s' looks off: %s", name, issues)

        async def call() -> str:
            return await self._adapter.generate(
                system=bundle.system,
                prompt=bundle.user,
                json_schema=json_schema,
                schema_name=name,
            )

        with self._telemetry("tailoring.step", step=name):
            raw = await execute_with_retry(
                call, self._retry_policy, telemetry=self._telemetry
            )

        outcome = parse_llm_json(raw, schema, self._parse_config)
        if isinstance(outcome, ParseFailure):
            log.error(
                "Step '%s' returned an unusable response (%s): %s; repairs: %s",
                name,
                outcome.kind,
                outcome.error.message,
                list(outcome.repair_log),
            )
            raise TailoringError(f"{name} failed: {outcome.error.message}", outcome.error)
        if outcome.repair_log:
            log.info("Step '%s' response needed repairs: %s", name, list(outcome.repair_log))
        return outcome.data
