"""
API v1 router - aggregates all endpoint modules (RESTful structure).
"""

from fastapi import APIRouter

from lendhub.api.v1.endpoints import categories, exchange_points, health, items, search, transactions, users

api_router = APIRouter(prefix="/v1")

api_router.include_router(health.router, prefix="/health", tags=["health"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(items.router, prefix="/items", tags=["items"])
api_router.include_router(transactions.router, prefix="/transactions", tags=["transactions"])
api_router.include_router(categories.router, prefix="/categories", tags=["categories"])
api_router.include_router(exchange_points.router, prefix="/exchange-points", tags=["exchange-points"])
api_router.include_router(search.router, prefix="/search", tags=["search"])
