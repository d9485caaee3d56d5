"""FastAPI application for the studio payment reconciliation service."""
