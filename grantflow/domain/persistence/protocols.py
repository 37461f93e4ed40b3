"""Interfaces of the stores the pipeline consumes.

Any durable backend can satisfy these; the JSON file stores in this package
are the reference implementation used by the CLI and tests.
"""

from typing import Protocol

from grantflow.domain.models.approval import ApprovalRecord
from grantflow.domain.models.grant import Grant
from grantflow.domain.models.org import ComplianceDoc, OrgProfile, UploadContext
from grantflow.domain.models.team import TeamMember


class GrantStore(Protocol):
    def get(self, org_id: str, grant_id: str) -> Grant: ...

    def save(self, grant: Grant) -> None: ...

    def list_by_org(self, org_id: str) -> list[Grant]: ...


class ApprovalStore(Protocol):
    def get(self, org_id: str, approval_id: str) -> ApprovalRecord: ...

    def save(self, record: ApprovalRecord) -> None: ...

    def list_by_grant(self, org_id: str, grant_id: str) -> list[ApprovalRecord]: ...


class ComplianceDocStore(Protocol):
    def list_by_org(self, org_id: str) -> list[ComplianceDoc]: ...


class UploadStore(Protocol):
    def get_context(self, org_id: str, grant_id: str | None = None) -> UploadContext: ...


class OrgProfileStore(Protocol):
    def get(self, org_id: str) -> OrgProfile: ...


class TeamStore(Protocol):
    def list_team(self, org_id: str) -> list[TeamMember]: ...
