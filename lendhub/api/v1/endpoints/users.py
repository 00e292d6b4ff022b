"""
User endpoints - registration, login, profile and category counts.
Design: Thin controller; UserService owns location propagation and nominations.
"""

from fastapi import APIRouter, status

from lendhub.core.dependencies import CurrentUser, ServicesDep
from lendhub.core.security import create_access_token
from lendhub.schemas.category import CategoryCounts
from lendhub.schemas.user import LoginRequest, TokenResponse, UserCreate, UserResponse, UserUpdate

router = APIRouter()


@router.post("/register", response_model=UserResponse, status_code=status.HTTP_201_CREATED)
async def register(services: ServicesDep, data: UserCreate):
    """Create new user. Returns user without password."""
    user = await services.users.register(data)
    return UserResponse.model_validate(user)


@router.post("/login", response_model=TokenResponse)
async def login(services: ServicesDep, data: LoginRequest):
    """Authenticate and return JWT."""
    user = await services.users.authenticate(data.email, data.password)
    return TokenResponse(access_token=create_access_token(user.id, role=user.role.value))


@router.get("/me", response_model=UserResponse)
async def me(user: CurrentUser):
    return UserResponse.model_validate(user)


@router.patch("/me", response_model=UserResponse)
async def update_me(services: ServicesDep, user: CurrentUser, data: UserUpdate):
    """Profile update. A new location moves the user's items; nominations re-shape exchange point caches."""
    user = await services.users.update_profile(user, data)
    return UserResponse.model_validate(user)


@router.get("/{user_id}", response_model=UserResponse)
async def get_user(services: ServicesDep, user_id: int):
    return await services.users.get_user(user_id)


@router.get("/{user_id}/categories", response_model=CategoryCounts)
async def user_categories(services: ServicesDep, user_id: int):
    counts = await services.users.get_or_compute_categories(user_id)
    return CategoryCounts(user_id=user_id, counts=counts)
