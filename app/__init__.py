"""Netflix Rows FastAPI application package."""
