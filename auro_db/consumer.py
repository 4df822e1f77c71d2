"""The insert-then-read sequence run by every consumer of the shared handle.

Both hosts (the web page load and the worker) call
:func:`insert_then_select` and decide for themselves what to do with the
result: render it, log it, or turn a failure into an error response or a
non-zero exit code.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import List, Union

from sqlalchemy.exc import SQLAlchemyError

from . import crud
from .database import Database
from .schemas import UserOut


@dataclass(frozen=True)
class Loaded:
    users: List[UserOut]


@dataclass(frozen=True)
class LoadFailed:
    cause: Exception


LoadResult = Union[Loaded, LoadFailed]


def insert_then_select(database: Database, email: str = crud.TEST_EMAIL) -> LoadResult:
    try:
        with database.session_scope() as db:
            crud.create_user(db, email)
            users = [UserOut.model_validate(user) for user in crud.get_users(db)]
    except SQLAlchemyError as exc:
        return LoadFailed(exc)

    return Loaded(users)
