"""Server-side client context injection for route handlers.

Geo resolver and address normalizer are resolved per request from their providers, so tests
can swap them with app.dependency_overrides[get_client_context].
"""

from typing import Annotated

from fastapi import Depends, Request

from apps.visits.services.client_context import ClientContext, extract_client_context


def get_client_context(request: Request) -> ClientContext:
    """FastAPI dependency: ClientContext from request headers and connection address."""
    remote_addr = request.client.host if request.client else None
    return extract_client_context(request.headers, remote_addr)


# Type alias for Depends()
ClientContextDep = Annotated[ClientContext, Depends(get_client_context)]
