"""
Pytest test suite for the Order Service backend.

Test categories:
- Unit tests: orchestrator, reservation and clients with fake or stubbed collaborators
- Integration tests: order store against in-memory SQLite
- API tests: full FastAPI app through the ASGI transport
"""
