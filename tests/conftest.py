"""
Pytest configuration and shared fixtures for the env_transport test suite.
"""

import pytest

import numpy as np

from env_transport.operators.stencils import available_stencils

# =============================================================================
# Test Configuration
# =============================================================================


def pytest_configure(config):
    """Configure pytest with custom markers and settings."""
    config.addinivalue_line("markers", "unit: Unit tests (fast, isolated)")
    config.addinivalue_line("markers", "integration: Integration tests (slower, cross-component)")
    config.addinivalue_line("markers", "slow: Slow tests (may take >10 seconds)")


def pytest_collection_modifyitems(config, items):
    """Add markers based on test paths."""
    for item in items:
        test_path = str(item.fspath)

        if "/unit/" in test_path:
            item.add_marker(pytest.mark.unit)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)

        if "large" in item.name or "slow" in item.name:
            item.add_marker(pytest.mark.slow)


# =============================================================================
# Field Fixtures
# =============================================================================


@pytest.fixture
def rng():
    """Seeded random generator for reproducible fields."""
    return np.random.default_rng(42)


@pytest.fixture
def pulse_field():
    """Length-10 field with unit mass in cell 5."""
    phi = np.zeros(10)
    phi[5] = 1.0
    return phi


@pytest.fixture
def smooth_field():
    """Smooth positive periodic profile on 40 cells."""
    x = np.linspace(0.0, 1.0, 40, endpoint=False)
    return 1.5 + np.sin(2.0 * np.pi * x)


@pytest.fixture
def field_3d(rng):
    """Random positive rank-3 field."""
    return rng.uniform(0.5, 2.0, size=(6, 7, 8))


@pytest.fixture(params=["upwind1", "upwind2", "l94", "ppm"])
def stencil_name(request):
    """Every built-in stencil."""
    assert request.param in available_stencils()
    return request.param
