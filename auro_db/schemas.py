from pydantic import BaseModel, ConfigDict


class UserOut(BaseModel):
    """Read-only view of a users row."""

    model_config = ConfigDict(from_attributes=True)

    id: int
    email: str
    is_active: bool
