"""
FastAPI dependencies - injection for DB, services, side-effect adapters and auth (SOLID: Dependency Inversion).
Challenge: Reusable auth, consistent error responses, swappable notifier/indexer in tests.
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from lendhub.cache.user_cache import UserCache
from lendhub.core.security import decode_access_token
from lendhub.db.models.user import User
from lendhub.db.repositories.user_repository import UserRepository
from lendhub.db.session import DbSession
from lendhub.notifications.notifier import CeleryNotifier, Notifier
from lendhub.search.indexer import CelerySearchIndexer, SearchIndexer
from lendhub.services.factory import Services, build_services

security = HTTPBearer(auto_error=False)


def get_notifier() -> Notifier:
    return CeleryNotifier()


def get_indexer() -> SearchIndexer:
    return CelerySearchIndexer()


def get_user_cache(request: Request) -> UserCache:
    """One cache per app instance (created in lifespan)."""
    return request.app.state.user_cache


def get_services(
    session: DbSession,
    notifier: Annotated[Notifier, Depends(get_notifier)],
    indexer: Annotated[SearchIndexer, Depends(get_indexer)],
    user_cache: Annotated[UserCache, Depends(get_user_cache)],
) -> Services:
    """Request-scoped service graph sharing the request's session."""
    return build_services(session, notifier=notifier, indexer=indexer, user_cache=user_cache)


async def get_current_user(
    session: DbSession,
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(security)],
) -> User:
    """Resolve JWT to the user row. Raises 401 if missing or invalid."""
    if not credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )
    payload = decode_access_token(credentials.credentials)
    if not payload or "sub" not in payload:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )
    repo = UserRepository(session)
    user = await repo.get_by_id(int(payload["sub"]))
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")
    return user


ServicesDep = Annotated[Services, Depends(get_services)]
CurrentUser = Annotated[User, Depends(get_current_user)]
