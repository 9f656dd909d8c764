"""HTTP surface - FastAPI routers for rules, quotes and analytics."""
