from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models

# The literal both the web page load and the worker insert.
TEST_EMAIL = "test@test.dk"


def create_user(db: Session, email: str) -> models.User:
    """Insert a user and return it with its generated id and defaults loaded."""
    user = models.User(email=email)
    db.add(user)
    try:
        db.commit()
    except SQLAlchemyError:
        db.rollback()
        raise

    db.refresh(user)
    return user


def get_users(db: Session) -> list[models.User]:
    """Return every row of the users table, oldest first."""
    return list(db.scalars(select(models.User).order_by(models.User.id)).all())
