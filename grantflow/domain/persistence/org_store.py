"""Read-only org data stores backed by JSON files.

Each org directory may hold ``profile.json``, ``team.json``,
``compliance.json`` and ``uploads.json``. Missing files mean "no data",
not an error.
"""

from pathlib import Path

from pydantic import TypeAdapter, ValidationError

from grantflow.domain.constants import (
    COMPLIANCE_FILENAME,
    DEFAULT_STORE_ROOT,
    ORGS_DIRNAME,
    PROFILE_FILENAME,
    TEAM_FILENAME,
    UNASSIGNED_OWNER,
    UPLOADS_FILENAME,
)
from grantflow.domain.errors import StoreError
from grantflow.domain.models.org import ComplianceDoc, OrgProfile, Upload, UploadContext
from grantflow.domain.models.team import TeamMember
from grantflow.domain.persistence._json_files import read_json, write_json_atomic

_DOCS = TypeAdapter(list[ComplianceDoc])
_TEAM = TypeAdapter(list[TeamMember])
_UPLOADS = TypeAdapter(list[Upload])


def _without_grant_id(items: list[dict]) -> list[dict]:
    return [{k: v for k, v in u.items() if k != "grant_id"} for u in items]


class JsonOrgStore:
    """Implements the profile, team, compliance and upload store protocols."""

    def __init__(self, root: Path | None = None):
        self.root = root or DEFAULT_STORE_ROOT

    def org_dir(self, org_id: str) -> Path:
        return self.root / ORGS_DIRNAME / org_id

    def get(self, org_id: str) -> OrgProfile:
        data = read_json(self.org_dir(org_id) / PROFILE_FILENAME, default={})
        try:
            return OrgProfile.model_validate(data)
        except ValidationError as e:
            raise StoreError(f"Invalid profile for org '{org_id}': {e}") from e

    def list_by_org(self, org_id: str) -> list[ComplianceDoc]:
        """Compliance documents of an org."""
        data = read_json(self.org_dir(org_id) / COMPLIANCE_FILENAME, default=[])
        try:
            return _DOCS.validate_python(data)
        except ValidationError as e:
            raise StoreError(f"Invalid compliance docs for org '{org_id}': {e}") from e

    def list_team(self, org_id: str) -> list[TeamMember]:
        """Team roster; the unassigned sentinel member is always present."""
        data = read_json(self.org_dir(org_id) / TEAM_FILENAME, default=[])
        try:
            team = _TEAM.validate_python(data)
        except ValidationError as e:
            raise StoreError(f"Invalid team for org '{org_id}': {e}") from e
        if not any(m.id == UNASSIGNED_OWNER for m in team):
            team.append(TeamMember(id=UNASSIGNED_OWNER, name="Unassigned", role="none"))
        return team

    def get_context(self, org_id: str, grant_id: str | None = None) -> UploadContext:
        """Uploads split into org-wide knowledge base and grant-specific files.

        ``uploads.json`` entries carry an optional ``grant_id``; entries
        without one belong to the org knowledge base.
        """
        raw = read_json(self.org_dir(org_id) / UPLOADS_FILENAME, default=[])
        org_raw = [u for u in raw if not u.get("grant_id")]
        grant_raw = [u for u in raw if grant_id and u.get("grant_id") == grant_id]
        try:
            return UploadContext(
                org_uploads=_UPLOADS.validate_python(_without_grant_id(org_raw)),
                grant_uploads=_UPLOADS.validate_python(_without_grant_id(grant_raw)),
            )
        except ValidationError as e:
            raise StoreError(f"Invalid uploads for org '{org_id}': {e}") from e

    def save_profile(self, org_id: str, profile: OrgProfile) -> Path:
        return write_json_atomic(
            self.org_dir(org_id) / PROFILE_FILENAME, profile.model_dump(mode="json")
        )

    def save_team(self, org_id: str, team: list[TeamMember]) -> Path:
        return write_json_atomic(
            self.org_dir(org_id) / TEAM_FILENAME, _TEAM.dump_python(team, mode="json")
        )

    def save_compliance(self, org_id: str, docs: list[ComplianceDoc]) -> Path:
        return write_json_atomic(
            self.org_dir(org_id) / COMPLIANCE_FILENAME, _DOCS.dump_python(docs, mode="json")
        )
