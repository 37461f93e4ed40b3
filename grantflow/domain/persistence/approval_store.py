from datetime import datetime, timezone
from pathlib import Path

from pydantic import ValidationError

from grantflow.domain.constants import APPROVALS_DIRNAME, DEFAULT_STORE_ROOT, ORGS_DIRNAME
from grantflow.domain.errors import StoreError
from grantflow.domain.models.approval import ApprovalRecord
from grantflow.domain.persistence._json_files import read_json, write_json_atomic


class JsonApprovalStore:
    """Approval records as JSON files under ``<root>/orgs/<org_id>/approvals/``."""

    def __init__(self, root: Path | None = None):
        self.root = root or DEFAULT_STORE_ROOT

    def save(self, record: ApprovalRecord) -> Path:
        record.updated_at = datetime.now(timezone.utc)
        return write_json_atomic(
            self._dir(record.org_id) / f"{record.id}.json",
            record.model_dump(mode="json"),
        )

    def get(self, org_id: str, approval_id: str) -> ApprovalRecord:
        data = read_json(self._dir(org_id) / f"{approval_id}.json")
        if data is None:
            raise StoreError(f"Approval '{approval_id}' not found for org '{org_id}'")
        return self._deserialize(data)

    def list_by_grant(self, org_id: str, grant_id: str) -> list[ApprovalRecord]:
        """Approvals for one grant, newest first."""
        approvals_dir = self._dir(org_id)
        if not approvals_dir.exists():
            return []
        records = [
            self._deserialize(read_json(path))
            for path in approvals_dir.glob("*.json")
        ]
        records = [r for r in records if r.grant_id == grant_id]
        return sorted(records, key=lambda r: r.created_at, reverse=True)

    def _dir(self, org_id: str) -> Path:
        return self.root / ORGS_DIRNAME / org_id / APPROVALS_DIRNAME

    def _deserialize(self, data: dict) -> ApprovalRecord:
        try:
            return ApprovalRecord.model_validate(data)
        except ValidationError as e:
            raise StoreError(f"Invalid approval data: {e}") from e
