"""
API server package: HTTP push endpoint for batch deliveries.

Built on FastAPI; see server.py for routes and status-code mapping.
"""
