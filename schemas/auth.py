from typing import Optional

from pydantic import BaseModel, ConfigDict

from models.enums import Role


class Actor(BaseModel):
    """Caller identity handed over by the upstream gateway."""
    id: str
    role: Role
    name: Optional[str] = None

    model_config = ConfigDict(frozen=True)
