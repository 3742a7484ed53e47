"""Issue Ledger.

Anonymous reporting and voting on shared-infrastructure issues, stored
as encoded payloads plus public metadata in a ledger key/value store:
- Record store with an index key over a store that cannot list keys
- Pluggable payload codec (simulated FHE by default)
- FastAPI routes over the issue service
- Celery index repair and Slack notifications
"""
