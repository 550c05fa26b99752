from decimal import Decimal

from pydantic import Field

from jobly.schemas.base import CamelModel, CamelRequest
from jobly.services.repository import INT4_MAX


class JobOut(CamelModel):
    id: int
    title: str
    salary: int | None = None
    equity: Decimal | None = None
    company_handle: str


class JobListItemOut(JobOut):
    company_name: str | None = None


class JobEnvelope(CamelModel):
    job: JobOut


class JobListEnvelope(CamelModel):
    jobs: list[JobListItemOut] = Field(default_factory=list)


class JobDeletedOut(CamelModel):
    deleted: int


class JobCreateRequest(CamelRequest):
    title: str = Field(min_length=1)
    salary: int | None = Field(default=None, ge=0, le=INT4_MAX)
    equity: Decimal | None = Field(default=None, ge=0, le=1)
    company_handle: str = Field(min_length=1, max_length=25)


class JobPatchRequest(CamelRequest):
    title: str | None = Field(default=None, min_length=1)
    salary: int | None = Field(default=None, ge=0, le=INT4_MAX)
    equity: Decimal | None = Field(default=None, ge=0, le=1)
