from fastapi import APIRouter, Depends, HTTPException, Query, status

from jobly.core.security import get_admin_principal
from jobly.schemas.companies import (
    CompanyCreateRequest,
    CompanyDeletedOut,
    CompanyDetailEnvelope,
    CompanyDetailOut,
    CompanyEnvelope,
    CompanyListEnvelope,
    CompanyOut,
    CompanyPatchRequest,
)
from jobly.services.companies import get_company_repository
from jobly.services.repository import (
    RepositoryConflictError,
    RepositoryNotFoundError,
    RepositoryUnavailableError,
    RepositoryValidationError,
)

router = APIRouter()


@router.post(
    "",
    response_model=CompanyEnvelope,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(get_admin_principal)],
)
async def create_company(
    payload: CompanyCreateRequest,
    repository=Depends(get_company_repository),
) -> CompanyEnvelope:
    try:
        row = await repository.create(
            handle=payload.handle,
            name=payload.name,
            description=payload.description,
            num_employees=payload.num_employees,
            logo_url=payload.logo_url,
        )
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except (RepositoryValidationError, RepositoryConflictError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return CompanyEnvelope(company=CompanyOut(**row))


@router.get("", response_model=CompanyListEnvelope)
async def list_companies(
    name: str | None = Query(default=None),
    min_employees: str | None = Query(default=None, alias="minEmployees"),
    max_employees: str | None = Query(default=None, alias="maxEmployees"),
    repository=Depends(get_company_repository),
) -> CompanyListEnvelope:
    filters = {
        key: value
        for key, value in {"name": name, "minEmployees": min_employees, "maxEmployees": max_employees}.items()
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
    return CompanyListEnvelope(companies=[CompanyOut(**row) for row in rows])


@router.get("/{handle}", response_model=CompanyDetailEnvelope)
async def get_company(handle: str, repository=Depends(get_company_repository)) -> CompanyDetailEnvelope:
    try:
        row = await repository.get(handle)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return CompanyDetailEnvelope(company=CompanyDetailOut(**row))


@router.patch("/{handle}", response_model=CompanyEnvelope, dependencies=[Depends(get_admin_principal)])
async def patch_company(
    handle: str,
    payload: CompanyPatchRequest,
    repository=Depends(get_company_repository),
) -> CompanyEnvelope:
    try:
        row = await repository.update(handle, payload.model_dump(exclude_unset=True, by_alias=True))
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except (RepositoryValidationError, RepositoryConflictError) as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc
    return CompanyEnvelope(company=CompanyOut(**row))


@router.delete("/{handle}", response_model=CompanyDeletedOut, dependencies=[Depends(get_admin_principal)])
async def delete_company(handle: str, repository=Depends(get_company_repository)) -> CompanyDeletedOut:
    try:
        row = await repository.remove(handle)
    except RepositoryUnavailableError as exc:
        raise HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=str(exc)) from exc
    except RepositoryNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    return CompanyDeletedOut(deleted=row["handle"])
