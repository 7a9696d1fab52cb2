"""API Layer — FastAPI routers, dependency wiring, error handlers."""
