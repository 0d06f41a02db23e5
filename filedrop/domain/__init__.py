"""Pure domain pieces: errors, access tokens, the served file, tunnel outcomes.

These modules are free of FastAPI/uvicorn concerns so they can be unit-tested
and reused by both the server and the smoke runner.
"""
__all__ = ["errors", "tokens", "files", "outcome"]
