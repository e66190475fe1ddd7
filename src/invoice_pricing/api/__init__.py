"""API subpackage - FastAPI preview service."""
