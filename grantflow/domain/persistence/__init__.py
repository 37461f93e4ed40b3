"""Store protocols and their JSON file implementations."""

from grantflow.domain.persistence.approval_store import JsonApprovalStore
from grantflow.domain.persistence.grant_store import JsonGrantStore
from grantflow.domain.persistence.org_store import JsonOrgStore

__all__ = ["JsonApprovalStore", "JsonGrantStore", "JsonOrgStore"]
