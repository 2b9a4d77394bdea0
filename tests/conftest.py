import pytest

from ats_optimizer.config import ScoringPolicy
from ats_optimizer.schemas import ScoreReport, StructuredResume
from helpers import RESUME_DATA


@pytest.fixture
def resume():
    return StructuredResume.model_validate(RESUME_DATA)


@pytest.fixture
def initial_report():
    return ScoreReport(score=42, missing_keywords=["Kubernetes", "Docker"], matched_keywords=["Node.js"])


@pytest.fixture
def policy():
    return ScoringPolicy()
