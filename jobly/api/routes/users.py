from fastapi import APIRouter, Depends, status

from jobly.core.auth import ADMIN_ONLY, ADMIN_OR_SELF, Principal
from jobly.core.config import Settings, get_settings
from jobly.core.security import authorize, create_token, enforce
from jobly.schemas.users import (
    ApplicationOut,
    UserCreateRequest,
    UserCreatedOut,
    UserDetailOut,
    UserOut,
    UserPatchRequest,
)
from jobly.services.users import get_user_repository

router = APIRouter()

admin_only = authorize(ADMIN_ONLY)
admin_or_self = authorize(ADMIN_OR_SELF, target_param="username")


@router.post(
    "",
    response_model=UserCreatedOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(admin_only)],
)
async def create_user(
    payload: UserCreateRequest,
    settings: Settings = Depends(get_settings),
    repository=Depends(get_user_repository),
) -> UserCreatedOut:
    row = await repository.register(
        username=payload.username,
        password=payload.password,
        first_name=payload.first_name,
        last_name=payload.last_name,
        email=payload.email,
        is_admin=payload.is_admin,
    )
    return UserCreatedOut(user=UserOut(**row), token=create_token(row, settings))


@router.get("", response_model=list[UserOut], dependencies=[Depends(admin_only)])
async def list_users(repository=Depends(get_user_repository)) -> list[UserOut]:
    rows = await repository.find_all()
    return [UserOut(**row) for row in rows]


@router.get("/{username}", response_model=UserDetailOut, dependencies=[Depends(admin_or_self)])
async def get_user(username: str, repository=Depends(get_user_repository)) -> UserDetailOut:
    row = await repository.get(username)
    return UserDetailOut(**row)


@router.patch("/{username}", response_model=UserOut)
async def patch_user(
    username: str,
    payload: UserPatchRequest,
    principal: Principal | None = Depends(admin_or_self),
    repository=Depends(get_user_repository),
) -> UserOut:
    data = payload.model_dump(by_alias=True, exclude_unset=True)
    if "isAdmin" in data:
        enforce(ADMIN_ONLY, principal, target=username)
    row = await repository.update(username, data)
    return UserOut(**row)


@router.delete("/{username}", dependencies=[Depends(admin_or_self)])
async def delete_user(username: str, repository=Depends(get_user_repository)) -> dict[str, str]:
    await repository.remove(username)
    return {"deleted": username}


@router.post(
    "/{username}/jobs/{job_id}",
    response_model=ApplicationOut,
    dependencies=[Depends(admin_or_self)],
)
async def apply_to_job(username: str, job_id: int, repository=Depends(get_user_repository)) -> ApplicationOut:
    await repository.apply_to_job(username, job_id)
    return ApplicationOut(applied=job_id)
