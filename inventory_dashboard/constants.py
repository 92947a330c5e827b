# inventory_dashboard/constants.py

APP_NAME = "Inventory Dashboard"

# ---- Inventory cache ----
CACHE_TTL_SECONDS = 30.0
MOVEMENTS_FETCH_LIMIT = 100

# ---- Session handling ----
SIGNED_IN_DEBOUNCE_SECONDS = 0.1
DEFAULT_IDLE_TIMEOUT_MS = 300_000  # 5 minutes

# ---- Per-call deadlines (seconds) ----
SESSION_CHECK_TIMEOUT = 10.0
PROFILE_FETCH_TIMEOUT = 8.0
LISTENER_PROFILE_TIMEOUT = 5.0
MATERIALS_FETCH_TIMEOUT = 15.0
MOVEMENTS_FETCH_TIMEOUT = 10.0
STATS_FETCH_TIMEOUT = 8.0
WEBHOOK_TIMEOUT = 15.0

# ---- Backend tables ----
TABLE_MATERIALS = "inventory_items"
TABLE_MOVEMENTS = "inventory_movements"
TABLE_PROFILES = "profiles"
ACTIVE_STATUS = "active"

# ---- Webhook ----
DEFAULT_WEBHOOK_PATH = "/webhook/sheet-registor"
DEFAULT_UNIT = "unit"

# ---- Display fallbacks ----
NO_CATEGORY = "Uncategorized"
NO_LOCATION = "Unassigned"
NO_COMMENT = "No comment"
