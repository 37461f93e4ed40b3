from datetime import date
from pathlib import Path

import pytest

from grantflow.application.config_models import GrantflowConfig
from grantflow.domain.models.org import ComplianceDoc, ComplianceStatus
from grantflow.domain.models.team import TeamMember
from grantflow.domain.providers.provider_factory import ProviderFactory
from tests.fakes import ScriptedProvider


@pytest.fixture
def store_root(tmp_path: Path) -> Path:
    """Isolated store root for tests.

    Tests should not write into the real project's .grantflow/store directory.
    """
    root = tmp_path / "store"
    root.mkdir()
    return root


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    """Prevent unit tests from accidentally using developer machine API keys.

    If a test needs an env var, it should set it explicitly via monkeypatch.
    """
    monkeypatch.delenv("ANTHROPIC_API_KEY", raising=False)
    monkeypatch.delenv("GEMINI_API_KEY", raising=False)


@pytest.fixture(autouse=True)
def _register_test_providers():
    """Register the scripted provider and restore the registry afterward."""
    original_registry = dict(ProviderFactory._registry)
    ProviderFactory.register("scripted", ScriptedProvider)

    yield

    ProviderFactory._registry.clear()
    ProviderFactory._registry.update(original_registry)


@pytest.fixture
def config(store_root: Path) -> GrantflowConfig:
    return GrantflowConfig(store_root=store_root, org="dlab", provider="scripted")


@pytest.fixture
def team() -> list[TeamMember]:
    return [
        TeamMember(id="alison", name="Alison", role="director", persona="Founder"),
        TeamMember(id="hana", name="Hana", role="hop"),
        TeamMember(id="pete", name="Pete", role="pm"),
        TeamMember(id="team", name="Unassigned", role="none"),
    ]


@pytest.fixture
def ready_docs() -> list[ComplianceDoc]:
    """Valid compliance records for every default Foundation requirement."""
    ids = ["pbo", "npo", "tax", "fin1", "orgpro"]
    docs = [ComplianceDoc(doc_id=i, status=ComplianceStatus.VALID) for i in ids]
    # Names without a doc-map entry are matched by name
    for name in ["Programme Description", "Detailed Budget", "Outcomes Framework"]:
        docs.append(ComplianceDoc(doc_id=name.lower().replace(" ", "-"), name=name, status=ComplianceStatus.UPLOADED))
    docs.append(ComplianceDoc(doc_id="board", status=ComplianceStatus.VALID, expiry=date(2030, 1, 1)))
    return docs
