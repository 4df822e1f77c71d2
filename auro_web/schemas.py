from typing import List

from pydantic import BaseModel

from auro_db.schemas import UserOut


class LayoutData(BaseModel):
    """What the layout page load hands to its renderer."""

    users: List[UserOut]
