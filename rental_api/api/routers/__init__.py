"""
FastAPI routers for organizing API endpoints.

Routers are plain ``APIRouter`` objects; the application factory in
``rental_api.main`` decides which ones are mounted.
"""
