"""
FastAPI dependencies shared by the routers.

The store and settings live on ``app.state``; they are put there by the
application factory, never looked up from module globals.
"""
from fastapi import Request

from rental_api.core.config import Settings
from rental_api.db.session import check_connection
from rental_api.db.store import DocumentStore


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_store(request: Request) -> DocumentStore:
    """
    Return the shared store after a connectivity check.

    Raises StoreUnavailableError (served as 503) before any work starts when
    the backend cannot be reached.
    """
    store: DocumentStore = request.app.state.store
    check_connection(store.engine)
    return store
