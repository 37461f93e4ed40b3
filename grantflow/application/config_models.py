"""Configuration models.

Config structure (``.grantflow/config.yml``):
    org: dlab
    provider: anthropic
    providers:
      anthropic:
        model: claude-sonnet-4-20250514
        api_key_env: ANTHROPIC_API_KEY
    gateway:
      max_retries: 3
      ceiling_seconds: 180
    context:
      per_document_chars: 2000
      draft: {grant_uploads: 3000, org_uploads: 2000, max_chars: 10000}
      default: {grant_uploads: 2000, org_uploads: 1500, max_chars: 8000}
    pipeline:
      gates:
        drafting->review: {need: hop, label: Head of Programmes must approve draft for review}
      roles:
        director: {label: Director, level: 3}
      required_docs:
        Foundation: [PBO Certificate, NPO Registration]
      doc_map:
        PBO Certificate: pbo
      cadence:
        Foundation:
          - {days: 14, label: Status check, kind: status}

Every section has defaults matching a typical South African NPO deployment;
a YAML layer only needs to name what it changes. Mappings in ``pipeline``
replace the defaults wholesale per key.
"""

from pathlib import Path
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from grantflow.domain.models.ai_request import ActionType
from grantflow.domain.models.grant import FunderType
from grantflow.domain.models.stage import TRANSITIONS, parse_gate_key
from grantflow.domain.models.team import DEFAULT_ROLES, RoleSpec


class GatewayConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    max_retries: int = 3
    ceiling_seconds: float = 180
    attempt_timeout_seconds: float | None = None

    @field_validator("max_retries")
    @classmethod
    def _retries_ge_0(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_retries must be >= 0")
        return v

    @field_validator("ceiling_seconds")
    @classmethod
    def _ceiling_gt_0(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("ceiling_seconds must be > 0")
        return v


class ContextBudget(BaseModel):
    """Character budgets for one action type."""

    model_config = ConfigDict(extra="forbid")

    grant_uploads: int = Field(ge=0)
    org_uploads: int = Field(ge=0)
    max_chars: int = Field(gt=0)


class ContextConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    per_document_chars: int = Field(default=2000, gt=0)
    draft: ContextBudget = Field(
        default_factory=lambda: ContextBudget(grant_uploads=3000, org_uploads=2000, max_chars=10000)
    )
    default: ContextBudget = Field(
        default_factory=lambda: ContextBudget(grant_uploads=2000, org_uploads=1500, max_chars=8000)
    )

    def budget_for(self, action: ActionType) -> ContextBudget:
        return self.draft if action == ActionType.DRAFT else self.default


class GateConfig(BaseModel):
    model_config = ConfigDict(extra="forbid")

    need: str
    label: str


class CadenceStep(BaseModel):
    """One follow-up scheduled ``days`` after submission."""

    model_config = ConfigDict(extra="forbid")

    days: int = Field(gt=0)
    label: str
    kind: str = "status"


def _default_gates() -> dict[str, GateConfig]:
    return {
        "drafting->review": GateConfig(
            need="hop", label="Head of Programmes must approve draft for review"
        ),
        "review->submitted": GateConfig(
            need="director", label="Director must approve before submission"
        ),
        "awaiting->won": GateConfig(need="director", label="Director must confirm award"),
        "awaiting->lost": GateConfig(need="director", label="Director must confirm loss"),
    }


def _default_required_docs() -> dict[str, list[str]]:
    return {
        FunderType.CORPORATE_CSI.value: [
            "PBO Certificate", "NPO Registration", "Tax Clearance (SARS)",
            "Audited Financials", "B-BBEE Certificate", "Organisation Profile",
            "Programme Description", "Logical Framework", "Detailed Budget",
            "Board Resolution",
        ],
        FunderType.GOVERNMENT_SETA.value: [
            "PBO Certificate", "NPO Registration", "Tax Clearance (SARS)",
            "Audited Financials", "Audited Financials (Prior Year)", "B-BBEE Certificate",
            "FICA Compliance", "Accreditation Certificates", "Skills Development Plan",
            "WSP/ATR", "Board Resolution", "Banking Confirmation", "Company Registration",
        ],
        FunderType.INTERNATIONAL.value: [
            "NPO Registration", "Audited Financials", "Audited Financials (Prior Year)",
            "Organisation Profile", "Theory of Change", "M&E Framework",
            "Programme Description", "Budget (USD)", "Risk Register",
            "Safeguarding Policy", "Anti-Fraud Policy",
        ],
        FunderType.FOUNDATION.value: [
            "PBO Certificate", "NPO Registration", "Tax Clearance (SARS)",
            "Audited Financials", "Organisation Profile", "Programme Description",
            "Detailed Budget", "Outcomes Framework", "Board Resolution",
        ],
        FunderType.TECH_COMPANY.value: [
            "NPO Registration", "Organisation Profile", "Programme Description",
            "Detailed Budget", "Impact Metrics", "Tech Platform Overview",
            "Data Privacy Policy",
        ],
    }


def _default_doc_map() -> dict[str, str]:
    return {
        "PBO Certificate": "pbo",
        "NPO Registration": "npo",
        "Tax Clearance (SARS)": "tax",
        "Audited Financials": "fin1",
        "Audited Financials (Prior Year)": "fin2",
        "B-BBEE Certificate": "bbbee",
        "FICA Compliance": "fica",
        "Banking Confirmation": "bank",
        "Board Resolution": "board",
        "Organisation Profile": "orgpro",
        "Company Registration": "cipc",
        "Accreditation Certificates": "accred",
        "Skills Development Plan": "sdp",
        "WSP/ATR": "wsp",
        "Theory of Change": "toc",
        "M&E Framework": "mne",
        "Risk Register": "risk",
        "Safeguarding Policy": "safeguard",
        "Anti-Fraud Policy": "antifraud",
        "Data Privacy Policy": "privacy",
    }


def _default_cadence() -> dict[str, list[CadenceStep]]:
    def steps(*items: tuple[int, str, str]) -> list[CadenceStep]:
        return [CadenceStep(days=d, label=l, kind=k) for d, l, k in items]

    return {
        FunderType.CORPORATE_CSI.value: steps(
            (14, "Status check", "status"),
            (28, "Share success story", "update"),
            (42, "Offer to present", "offer"),
            (60, "Second follow-up", "status"),
        ),
        FunderType.GOVERNMENT_SETA.value: steps(
            (21, "Confirm submission", "status"),
            (45, "Share interim outcomes", "update"),
            (75, "Request timeline", "status"),
        ),
        FunderType.INTERNATIONAL.value: steps(
            (14, "Confirm receipt", "status"),
            (30, "Programme update", "update"),
            (60, "Offer site visit", "offer"),
            (90, "Check timeline", "status"),
        ),
        FunderType.FOUNDATION.value: steps(
            (14, "Status check", "status"),
            (35, "Share success story", "update"),
            (56, "Offer to discuss", "offer"),
        ),
        FunderType.TECH_COMPANY.value: steps(
            (10, "Quick check-in", "status"),
            (21, "Share AI angle", "update"),
            (35, "Offer demo", "offer"),
        ),
    }


class PipelineConfig(BaseModel):
    """Deployment-specific pipeline rules.

    Keys of ``required_docs`` and ``cadence`` are funder type values
    (e.g. ``"Corporate CSI"``); gate keys use the ``"<from>-><to>"`` form.
    """

    model_config = ConfigDict(extra="forbid")

    gates: dict[str, GateConfig] = Field(default_factory=_default_gates)
    roles: dict[str, RoleSpec] = Field(default_factory=lambda: dict(DEFAULT_ROLES))
    required_docs: dict[str, list[str]] = Field(default_factory=_default_required_docs)
    doc_map: dict[str, str] = Field(default_factory=_default_doc_map)
    cadence: dict[str, list[CadenceStep]] = Field(default_factory=_default_cadence)

    @model_validator(mode="after")
    def _gates_match_graph_and_roles(self) -> "PipelineConfig":
        for key, gate in self.gates.items():
            from_stage, to_stage = parse_gate_key(key)
            if to_stage not in TRANSITIONS[from_stage]:
                raise ValueError(f"gate '{key}' is not a transition in the stage graph")
            if gate.need not in self.roles:
                raise ValueError(
                    f"gate '{key}' needs unknown role '{gate.need}'; "
                    f"known roles: {', '.join(sorted(self.roles))}"
                )
        return self

    def role_level(self, role: str | None) -> int:
        """Authority level of a role; unknown roles have no authority."""
        spec = self.roles.get(role or "")
        return spec.level if spec else 0

    def docs_for(self, funder_type: FunderType | str) -> list[str]:
        key = funder_type.value if isinstance(funder_type, FunderType) else funder_type
        return self.required_docs.get(key, [])

    def cadence_for(self, funder_type: FunderType | str) -> list[CadenceStep]:
        key = funder_type.value if isinstance(funder_type, FunderType) else funder_type
        return self.cadence.get(key, [])


class GrantflowConfig(BaseModel):
    """Top-level configuration after all YAML layers are merged."""

    model_config = ConfigDict(extra="forbid")

    store_root: Path | None = None
    org: str = "default"
    provider: str = "anthropic"
    providers: dict[str, dict[str, Any]] = Field(default_factory=dict)
    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    context: ContextConfig = Field(default_factory=ContextConfig)
    pipeline: PipelineConfig = Field(default_factory=PipelineConfig)

    def provider_config(self, key: str | None = None) -> dict[str, Any]:
        return dict(self.providers.get(key or self.provider) or {})
