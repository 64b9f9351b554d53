"""
Pytest configuration and shared fixtures for PolicyCraft tests.

This module provides:
- Configuration fixtures
- Reference data fixtures (library, catalog)
- Component fixtures (engine, mapper)
- Server fixtures for API tests
"""

from __future__ import annotations

from typing import Any

import pytest

from policycraft.config.defaults import get_test_config
from policycraft.config.schema import PolicyCraftConfig
from policycraft.engine.engine import PolicyEngine
from policycraft.library.loader import LibraryLoader
from policycraft.library.reference import ControlCatalog, ReferenceLibrary
from policycraft.mapping.framework_mapper import FrameworkMapper
from policycraft.models.organization import OrganizationProfile, OrganizationType
from policycraft.notifications import NotificationManager


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def test_config() -> PolicyCraftConfig:
    """Create a configuration with notifications disabled."""
    return get_test_config()


# =============================================================================
# Reference Data Fixtures
# =============================================================================


@pytest.fixture(scope="session")
def library() -> ReferenceLibrary:
    """Load the packaged clause library once per session."""
    return LibraryLoader().load_library()


@pytest.fixture(scope="session")
def catalog() -> ControlCatalog:
    """Load the packaged control catalog once per session."""
    return LibraryLoader().load_catalog()


@pytest.fixture
def k12_profile() -> OrganizationProfile:
    """A K12 district serving students under 13."""
    return OrganizationProfile(
        organization_name="Springfield USD",
        organization_type=OrganizationType.K12,
        state="CA",
        student_age_min=10,
        student_age_max=18,
    )


@pytest.fixture
def highered_profile() -> OrganizationProfile:
    """A university profile."""
    return OrganizationProfile(
        organization_name="Shelbyville University",
        organization_type=OrganizationType.HIGHER_ED,
        state="TX",
        student_age_min=17,
    )


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def notifier() -> NotificationManager:
    """A log-only notification manager that records what it sends."""
    return NotificationManager()


@pytest.fixture
def engine(
    library: ReferenceLibrary,
    test_config: PolicyCraftConfig,
    notifier: NotificationManager,
) -> PolicyEngine:
    """A policy engine over the packaged library with in-memory storage."""
    return PolicyEngine(library, test_config, notifier=notifier)


@pytest.fixture
def mapper(catalog: ControlCatalog) -> FrameworkMapper:
    """A framework mapper over the packaged catalog."""
    return FrameworkMapper(catalog)


@pytest.fixture
def k12_policy(engine: PolicyEngine, k12_profile: OrganizationProfile) -> Any:
    """A draft AI acceptable use policy for a K12 district."""
    return engine.generate_policy("ai-acceptable-use", k12_profile)


# =============================================================================
# Server Fixtures
# =============================================================================


@pytest.fixture
def server_app(test_config: PolicyCraftConfig, engine: PolicyEngine, mapper: FrameworkMapper) -> Any:
    """Create the aiohttp application for API tests."""
    from policycraft.server.app import PolicyCraftApplication

    return PolicyCraftApplication(test_config, engine=engine, mapper=mapper).app
