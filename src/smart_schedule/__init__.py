"""Smart schedule orchestration service."""
