import os

# Backend selection: "sql" (durable, default) or "memory" (single process)
LEDGER_BACKEND = os.getenv("LEDGER_BACKEND", "sql").lower().strip()

# Index append strategy: "last-writer-wins" or "verified-retry"
INDEX_WRITE_MODE = os.getenv("INDEX_WRITE_MODE", "last-writer-wins").lower().strip()
INDEX_RETRY_LIMIT = int(os.getenv("INDEX_RETRY_LIMIT", "3"))
INDEX_SETTLE_SECONDS = float(os.getenv("INDEX_SETTLE_SECONDS", "0.05"))

# Record reads in flight at once while listing; keep below the SQL pool size
READ_CONCURRENCY = int(os.getenv("READ_CONCURRENCY", "10"))
