# ============================================================================
# ghostleak/__init__.py
# Package Marker for the Ghostleak Backend
# ============================================================================
#
# PURPOSE:
# Ghostleak watches browser navigation passively and, for every origin it sees
# for the first time, probes two files that are often exposed by mistake:
# /.git/config and /.env.
#
# LAYOUT:
# - base/:    configuration, runtime settings, shared scan context
# - data/:    SQLite persistence, dedup set, finding store
# - engine/:  classifier, lock table, check dispatcher
# - net/:     outbound HTTP probe client
# - ghost/:   navigation event adapter and the mitmproxy observer
# - server/:  FastAPI control surface
#
# ============================================================================

__version__ = "0.3.0"
