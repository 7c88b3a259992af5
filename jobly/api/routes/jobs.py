from fastapi import APIRouter, Depends, Query, status

from jobly.core.auth import ADMIN_ONLY
from jobly.core.security import authorize
from jobly.schemas.jobs import JobCreateRequest, JobOut, JobPatchRequest
from jobly.services.jobs import get_job_repository

router = APIRouter()

admin_only = authorize(ADMIN_ONLY)


@router.post(
    "",
    response_model=JobOut,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(admin_only)],
)
async def create_job(payload: JobCreateRequest, repository=Depends(get_job_repository)) -> JobOut:
    row = await repository.create(
        title=payload.title,
        company_handle=payload.company_handle,
        salary=payload.salary,
        equity=payload.equity,
    )
    return JobOut(**row)


@router.get("", response_model=list[JobOut])
async def list_jobs(
    title: str | None = Query(default=None, min_length=1),
    min_salary: str | None = Query(default=None, alias="minSalary"),
    has_equity: str | None = Query(default=None, alias="hasEquity"),
    company_handle: str | None = Query(default=None, alias="companyHandle", min_length=1),
    repository=Depends(get_job_repository),
) -> list[JobOut]:
    rows = await repository.find_all(
        title=title,
        min_salary=min_salary,
        has_equity=has_equity,
        company_handle=company_handle,
    )
    return [JobOut(**row) for row in rows]


@router.get("/{job_id}", response_model=JobOut)
async def get_job(job_id: int, repository=Depends(get_job_repository)) -> JobOut:
    row = await repository.get(job_id)
    return JobOut(**row)


@router.patch("/{job_id}", response_model=JobOut, dependencies=[Depends(admin_only)])
async def patch_job(
    job_id: int,
    payload: JobPatchRequest,
    repository=Depends(get_job_repository),
) -> JobOut:
    row = await repository.update(job_id, payload.model_dump(by_alias=True, exclude_unset=True))
    return JobOut(**row)


@router.delete("/{job_id}", dependencies=[Depends(admin_only)])
async def delete_job(job_id: int, repository=Depends(get_job_repository)) -> dict[str, int]:
    await repository.remove(job_id)
    return {"deleted": job_id}
