from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

class CamelModel(BaseModel):
    """Serializes with camelCase keys, accepts either casing on input."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

class LoginIn(BaseModel):
    username: str | None = None
    password: str | None = None

class Token(CamelModel):
    user: dict
    access_token: str
    token_type: str = "bearer"
    message: str = "Login successful"
