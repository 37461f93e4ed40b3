from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from grantflow.domain.constants import DEFAULT_STORE_ROOT, GRANTS_DIRNAME, ORGS_DIRNAME
from grantflow.domain.errors import GrantNotFoundError, StoreError
from grantflow.domain.models.grant import Grant
from grantflow.domain.persistence._json_files import read_json, write_json_atomic


class JsonGrantStore:
    """Handles persistence of grants as one JSON document per grant.

    Layout: ``<root>/orgs/<org_id>/grants/<grant_id>.json``. Nested
    structures (focus tags, log, document map, follow-ups) round-trip
    verbatim through pydantic's JSON mode. Grants are never deleted.
    """

    def __init__(self, root: Path | None = None):
        """
        Initialize the grant store.

        Args:
            root: Store root directory (default: .grantflow/store)
        """
        self.root = root or DEFAULT_STORE_ROOT
        self.root.mkdir(parents=True, exist_ok=True)

    def save(self, grant: Grant) -> Path:
        """
        Save a grant, replacing any previous version (last write wins).

        Returns:
            Path to the saved JSON file

        Raises:
            StoreError: If the write fails
        """
        grant.updated_at = datetime.now(timezone.utc)
        return write_json_atomic(self._path(grant.org_id, grant.id), self._serialize(grant))

    def get(self, org_id: str, grant_id: str) -> Grant:
        """
        Load a grant.

        Raises:
            GrantNotFoundError: If the grant doesn't exist
            StoreError: If the stored document is invalid
        """
        data = read_json(self._path(org_id, grant_id))
        if data is None:
            raise GrantNotFoundError(org_id, grant_id)
        return self._deserialize(data)

    def exists(self, org_id: str, grant_id: str) -> bool:
        return self._path(org_id, grant_id).exists()

    def list_by_org(self, org_id: str) -> list[Grant]:
        """List all grants owned by an org, ordered by id."""
        grants_dir = self.root / ORGS_DIRNAME / org_id / GRANTS_DIRNAME
        if not grants_dir.exists():
            return []

        grants = []
        for path in sorted(grants_dir.glob("*.json")):
            grants.append(self._deserialize(read_json(path)))
        return grants

    def _path(self, org_id: str, grant_id: str) -> Path:
        return self.root / ORGS_DIRNAME / org_id / GRANTS_DIRNAME / f"{grant_id}.json"

    def _serialize(self, grant: Grant) -> dict[str, Any]:
        return grant.model_dump(mode="json")

    def _deserialize(self, data: dict[str, Any]) -> Grant:
        try:
            return Grant.model_validate(data)
        except ValidationError as e:
            raise StoreError(f"Invalid grant data: {e}") from e
