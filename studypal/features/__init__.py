"""Feature packages; each api.py exposes get_router(app) and is mounted at /api/<package>/."""
