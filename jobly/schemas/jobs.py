from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from jobly.schemas.companies import INT4_MAX


class JobCreateRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    title: str = Field(..., min_length=1)
    company_handle: str = Field(..., min_length=1, max_length=25)
    salary: int | None = Field(default=None, ge=0, le=INT4_MAX)
    equity: Decimal | None = Field(default=None, ge=0, le=1)


class JobPatchRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    title: str | None = Field(default=None, min_length=1)
    salary: int | None = Field(default=None, ge=0, le=INT4_MAX)
    equity: Decimal | None = Field(default=None, ge=0, le=1)

    @field_validator("title")
    @classmethod
    def reject_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("may not be null")
        return value


class JobOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: int
    title: str
    salary: int | None = None
    equity: Decimal | None = None
    company_handle: str
