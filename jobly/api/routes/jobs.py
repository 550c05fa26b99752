from fastapi import APIRouter, Depends, HTTPException, Query, status

from jobly.core.security import get_admin_principal
from jobly.schemas.jobs import (
    JobCreateRequest,
    JobDeletedOut,
    JobEnvelope,
    JobListEnvelope,
    JobListItemOut,
    JobOut,
    JobPatchRequest,
)
from jobly.services.jobs import get_job_repository
from jobly.services.repository import (
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)

router = APIRouter()


@router.post(
    "",
    response_model=JobEnvelope,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(get_admin_principal)],
)
async def create_job(payload: JobCreateRequest, repository=Depends(get_job_repository)) -> JobEnvelope:
    try:
        row = await repository.create(
            title=payload.title,
            salary=payload.salary,
            equity=payload.equity,
            company_handle=payload.company_handle,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return JobEnvelope(job=JobOut(**row))


@router.get("", response_model=JobListEnvelope)
async def list_jobs(
    title: str | None = Query(default=None),
    min_salary: str | None = Query(default=None, alias="minSalary"),
    has_equity: str | None = Query(default=None, alias="hasEquity"),
    repository=Depends(get_job_repository),
) -> JobListEnvelope:
    filters = {
        key: value
        for key, value in {"title": title, "minSalary": min_salary, "hasEquity": has_equity}.items()
        if value is not None
    }
    try:
        if filters:
            rows = await repository.list_filtered(filters)
        else:
            rows = await repository.list_all()
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return JobListEnvelope(jobs=[JobListItemOut(**row) for row in rows])


@router.get("/{job_id}", response_model=JobEnvelope)
async def get_job(job_id: int, repository=Depends(get_job_repository)) -> JobEnvelope:
    try:
        row = await repository.get(job_id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return JobEnvelope(job=JobOut(**row))


@router.patch("/{job_id}", response_model=JobEnvelope, dependencies=[Depends(get_admin_principal)])
async def patch_job(
    job_id: int,
    payload: JobPatchRequest,
    repository=Depends(get_job_repository),
) -> JobEnvelope:
    try:
        row = await repository.update(job_id, payload.model_dump(exclude_unset=True, by_alias=True))
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except RepositoryValidationError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return JobEnvelope(job=JobOut(**row))


@router.delete("/{job_id}", response_model=JobDeletedOut, dependencies=[Depends(get_admin_principal)])
async def delete_job(job_id: int, repository=Depends(get_job_repository)) -> JobDeletedOut:
    try:
        row = await repository.remove(job_id)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return JobDeletedOut(deleted=row["id"])
