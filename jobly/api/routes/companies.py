from fastapi import APIRouter, Depends, Query, status

from jobly.core.auth import ADMIN_ONLY
from jobly.core.security import authorize
from jobly.schemas.companies import CompanyCreateRequest, CompanyDetailOut, CompanyOut, CompanyPatchRequest
from jobly.services.companies import get_company_repository

router = APIRouter()

admin_only = authorize(ADMIN_ONLY)


@router.post(
    "",
    response_model=CompanyOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(admin_only)],
)
async def create_company(
    payload: CompanyCreateRequest,
    repository=Depends(get_company_repository),
) -> CompanyOut:
    row = await repository.create(
        handle=payload.handle,
        name=payload.name,
        description=payload.description,
        num_employees=payload.num_employees,
        logo_url=payload.logo_url,
    )
    return CompanyOut(**row)


@router.get("", response_model=list[CompanyOut])
async def list_companies(
    name: str | None = Query(default=None, min_length=1),
    min_employees: str | None = Query(default=None, alias="minEmployees"),
    max_employees: str | None = Query(default=None, alias="maxEmployees"),
    repository=Depends(get_company_repository),
) -> list[CompanyOut]:
    rows = await repository.find_all(name=name, min_employees=min_employees, max_employees=max_employees)
    return [CompanyOut(**row) for row in rows]


@router.get("/{handle}", response_model=CompanyDetailOut)
async def get_company(handle: str, repository=Depends(get_company_repository)) -> CompanyDetailOut:
    row = await repository.get(handle)
    return CompanyDetailOut(**row)


@router.patch("/{handle}", response_model=CompanyOut, dependencies=[Depends(admin_only)])
async def patch_company(
    handle: str,
    payload: CompanyPatchRequest,
    repository=Depends(get_company_repository),
) -> CompanyOut:
    row = await repository.update(handle, payload.model_dump(by_alias=True, exclude_unset=True))
    return CompanyOut(**row)


@router.delete("/{handle}", dependencies=[Depends(admin_only)])
async def delete_company(handle: str, repository=Depends(get_company_repository)) -> dict[str, str]:
    await repository.remove(handle)
    return {"deleted": handle}
