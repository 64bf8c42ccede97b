"""
Pytest configuration and fixtures for mix planner tests.
"""
import pytest
from fastapi.testclient import TestClient

from mixplanner.api.main import app
from mixplanner.model.domains import (
    DIGITAL,
    EdgeKind,
    MarginMode,
    MarginPolicy,
    MetricEdge,
    DomainParameters,
    SALES,
    TELEVISION,
)


@pytest.fixture
def client():
    """Create a test client for the FastAPI app."""
    return TestClient(app)


@pytest.fixture
def skincare_spend():
    """Default skincare plan: 12M split 60/40 television/digital."""
    return {TELEVISION: 7_200_000.0, DIGITAL: 4_800_000.0}


@pytest.fixture
def skincare_auxiliary():
    """Eight organic posts per week."""
    return {"organicPosts": 8.0}


@pytest.fixture
def makeup_spend():
    return {TELEVISION: 4_000_000.0, DIGITAL: 6_000_000.0}


@pytest.fixture
def toy_domain():
    """
    Small two-channel domain with round numbers for hand calculations.

    reach = 100 * sat(tv, 10) + 1 * tv + 50 * sat(digital, 5)
    sales = 2 * reach
    grossProfit = 0.5 * sales
    """
    return DomainParameters(
        name="toy",
        label="Toy",
        channels=(TELEVISION, DIGITAL),
        metrics=("reach", SALES),
        edges=(
            MetricEdge("reach", TELEVISION, 100.0, scale=10.0, linear=1.0),
            MetricEdge("reach", DIGITAL, 50.0, scale=5.0),
            MetricEdge(SALES, "reach", 2.0, kind=EdgeKind.CONVERSION),
        ),
        margin=MarginPolicy(mode=MarginMode.FIXED, rate=0.5),
        default_spend=((TELEVISION, 10.0), (DIGITAL, 5.0)),
    )
