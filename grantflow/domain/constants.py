from pathlib import Path

# Store layout
DEFAULT_STORE_ROOT = Path(".grantflow/store")
ORGS_DIRNAME = "orgs"
GRANTS_DIRNAME = "grants"
APPROVALS_DIRNAME = "approvals"
PROFILE_FILENAME = "profile.json"
TEAM_FILENAME = "team.json"
COMPLIANCE_FILENAME = "compliance.json"
UPLOADS_FILENAME = "uploads.json"
TEMP_SUFFIX = ".json.tmp"

# Owner id used when nobody is assigned to a grant
UNASSIGNED_OWNER = "team"

# Bounded AI artifact history
MAX_ARTIFACT_HISTORY = 5
