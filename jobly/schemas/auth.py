from pydantic import BaseModel, Field


class TokenRequest(BaseModel):
    username: str = Field(..., min_length=1, max_length=25)
    password: str = Field(..., min_length=1, max_length=20)


class TokenOut(BaseModel):
    token: str
