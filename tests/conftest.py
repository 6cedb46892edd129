"""
Global test configuration and shared fixtures.
"""

from collections.abc import Callable
import logging
import os
from typing import Any

import pytest

from cv_tailor.core.types import RetryPolicy


# --- Environment Isolation (Autouse) ---
@pytest.fixture(autouse=True)
def isolate_tailor_env(request, monkeypatch):
    """Ensure a clean CV_TAILOR_* and provider-key environment for each test.

    Escape hatch: @pytest.mark.allow_env_pollution keeps the current env.
    """
    if request.node.get_closest_marker("allow_env_pollution"):
        return

    for key in list(os.environ.keys()):
        if key.startswith("CV_TAILOR_"):
            monkeypatch.delenv(key, raising=False)
    monkeypatch.delenv("OPENAI_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)
    monkeypatch.delenv("DEBUG", raising=False)


# --- Logging Fixtures ---
@pytest.fixture(scope="session", autouse=True)
def quiet_noisy_libraries():
    """Sets the log level for noisy external libraries to WARNING."""
    logging.getLogger("httpx").setLevel(logging.WARNING)
    logging.getLogger("openai").setLevel(logging.WARNING)


# --- Test Environment Markers ---
def pytest_configure(config):
    """Configure custom markers for test organization."""
    markers = [
        "unit: Fast, isolated unit tests",
        "contract: Protocol and invariant conformance tests",
        "integration: Component integration tests with fake providers",
        "allow_env_pollution: Keep the real environment for this test",
    ]
    for marker in markers:
        config.addinivalue_line("markers", marker)


# --- Core Fixtures ---


class SleepRecorder:
    """Stand-in for ``asyncio.sleep`` that records requested delays."""

    def __init__(self) -> None:
        self.calls: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.calls.append(seconds)

    @property
    def delays_ms(self) -> list[int]:
        return [round(s * 1000) for s in self.calls]


@pytest.fixture
def sleep_recorder() -> SleepRecorder:
    return SleepRecorder()


@pytest.fixture
def no_jitter_policy() -> RetryPolicy:
    return RetryPolicy(
        max_retries=3,
        initial_delay_ms=1000,
        exponential_base=2,
        max_delay_ms=30_000,
        jitter=False,
    )


class FakeAdapter:
    """Generation adapter returning scripted responses or raising errors."""

    model = "fake-model"

    def __init__(self, *responses: Any) -> None:
        self._responses = list(responses)
        self.calls: list[dict[str, Any]] = []

    async def generate(self, **kwargs: Any) -> str:
        self.calls.append(kwargs)
        item = self._responses.pop(0)
        if isinstance(item, BaseException):
            raise item
        return item


@pytest.fixture
def fake_adapter_factory() -> Callable[..., FakeAdapter]:
    return FakeAdapter


@pytest.fixture
def job_analysis_payload() -> dict[str, Any]:
    return {
        "requiredSkills": ["Python", "FastAPI"],
        "preferredSkills": ["Kubernetes"],
        "responsibilities": ["Build APIs"],
        "requirements": ["5 years of backend experience"],
        "experienceLevel": "Senior",
        "industryKeywords": ["microservices", "REST"],
    }


@pytest.fixture
def cv_payload() -> dict[str, Any]:
    return {
        "id": "cv-1",
        "personalInfo": {
            "firstName": "Alex",
            "lastName": "Martin",
            "email": "alex.martin@example.com",
            "summary": "Backend engineer",
        },
        "workExperiences": [
            {
                "id": "we-1",
                "company": "Acme",
                "position": "Backend Engineer",
                "startDate": "2019-03-01",
                "isCurrentPosition": True,
                "description": "Built internal services",
                "achievements": ["Cut latency by 40%"],
                "technologies": ["Python"],
            }
        ],
        "skills": [
            {
                "id": "sk-1",
                "name": "Python",
                "level": "expert",
                "category": "Languages",
            }
        ],
        "createdAt": "2024-01-10",
        "updatedAt": "2024-06-01",
        "version": "1",
    }
