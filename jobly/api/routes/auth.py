from fastapi import APIRouter, Depends, status

from jobly.core.config import Settings, get_settings
from jobly.core.security import create_token
from jobly.schemas.auth import TokenOut, TokenRequest
from jobly.schemas.users import UserRegisterRequest
from jobly.services.users import get_user_repository

router = APIRouter()


@router.post("/token", response_model=TokenOut)
async def issue_token(
    payload: TokenRequest,
    settings: Settings = Depends(get_settings),
    repository=Depends(get_user_repository),
) -> TokenOut:
    user = await repository.authenticate(payload.username, payload.password)
    return TokenOut(token=create_token(user, settings))


@router.post("/register", response_model=TokenOut, status_code=status.HTTP_201_CREATED)
async def register(
    payload: UserRegisterRequest,
    settings: Settings = Depends(get_settings),
    repository=Depends(get_user_repository),
) -> TokenOut:
    user = await repository.register(
        username=payload.username,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
    )
    return TokenOut(token=create_token(user, settings))
