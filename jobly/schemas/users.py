from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class UserRegisterRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    username: str = Field(..., min_length=1, max_length=25)
    password: str = Field(..., min_length=5, max_length=20)
    first_name: str = Field(..., min_length=1, max_length=25)
    last_name: str = Field(..., min_length=1, max_length=25)
    email: str = Field(..., min_length=6, max_length=60, pattern=EMAIL_PATTERN)


class UserCreateRequest(UserRegisterRequest):
    is_admin: bool = False


class UserPatchRequest(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="forbid")

    password: str | None = Field(default=None, min_length=5, max_length=20)
    first_name: str | None = Field(default=None, min_length=1, max_length=25)
    last_name: str | None = Field(default=None, min_length=1, max_length=25)
    email: str | None = Field(default=None, min_length=6, max_length=60, pattern=EMAIL_PATTERN)
    is_admin: bool | None = None

    @field_validator("password", "first_name", "last_name", "email", "is_admin")
    @classmethod
    def reject_null(cls, value: object) -> object:
        if value is None:
            raise ValueError("may not be null")
        return value


class UserOut(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    username: str
    first_name: str
    last_name: str
    email: str
    is_admin: bool = False


class UserDetailOut(UserOut):
    jobs: list[int] = Field(default_factory=list)


class UserCreatedOut(BaseModel):
    user: UserOut
    token: str


class ApplicationOut(BaseModel):
    applied: int
