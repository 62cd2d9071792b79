"""FastAPI server for the authoritative store."""
