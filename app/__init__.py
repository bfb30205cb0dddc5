"""HTTP entry point (uvicorn app.main:app)."""
