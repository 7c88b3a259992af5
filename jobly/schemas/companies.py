from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

URL_PATTERN = r"^https?://\S+$"
INT4_MAX = 2**31 - 1


class CompanyModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class CompanyCreateRequest(CompanyModel):
    model_config = ConfigDict(extra="forbid")

    handle: str = Field(..., min_length=1, max_length=25)
    name: str = Field(..., min_length=1)
    description: str
    num_employees: int | None = Field(default=None, ge=0, le=INT4_MAX)
    logo_url: str | None = Field(default=None, pattern=URL_PATTERN)


class CompanyPatchRequest(CompanyModel):
    model_config = ConfigDict(extra="forbid")

    name: str | None = Field(default=None, min_length=1)
    description: str | None = None
    num_employees: int | None = Field(default=None, ge=0, le=INT4_MAX)
    logo_url: str | None = Field(default=None, pattern=URL_PATTERN)

    @field_validator("name", "description")
    @classmethod
    def reject_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("may not be null")
        return value


class CompanyOut(CompanyModel):
    handle: str
    name: str
    description: str | None = None
    num_employees: int | None = None
    logo_url: str | None = None


class CompanyJobOut(CompanyModel):
    id: int
    title: str
    salary: int | None = None
    equity: Decimal | None = None


class CompanyDetailOut(CompanyOut):
    jobs: list[CompanyJobOut] = Field(default_factory=list)
