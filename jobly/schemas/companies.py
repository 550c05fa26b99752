from decimal import Decimal

from pydantic import Field

from jobly.schemas.base import CamelModel, CamelRequest
from jobly.services.repository import INT4_MAX


class CompanyOut(CamelModel):
    handle: str
    name: str
    description: str
    num_employees: int | None = None
    logo_url: str | None = None


class CompanyJobOut(CamelModel):
    id: int
    title: str
    salary: int | None = None
    equity: Decimal | None = None


class CompanyDetailOut(CompanyOut):
    jobs: list[CompanyJobOut] = Field(default_factory=list)


class CompanyEnvelope(CamelModel):
    company: CompanyOut


class CompanyDetailEnvelope(CamelModel):
    company: CompanyDetailOut


class CompanyListEnvelope(CamelModel):
    companies: list[CompanyOut] = Field(default_factory=list)


class CompanyDeletedOut(CamelModel):
    deleted: str


class CompanyCreateRequest(CamelRequest):
    handle: str = Field(min_length=1, max_length=25)
    name: str = Field(min_length=1)
    description: str
    num_employees: int | None = Field(default=None, ge=0, le=INT4_MAX)
    logo_url: str | None = None


class CompanyPatchRequest(CamelRequest):
    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    num_employees: int | None = Field(default=None, ge=0, le=INT4_MAX)
    logo_url: str | None = None
