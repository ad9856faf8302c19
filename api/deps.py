from __future__ import annotations

from collections.abc import Generator
from datetime import date
from typing import Annotated

from fastapi import Depends
from sqlalchemy.orm import Session

from api.auth import OwnerPrincipal, get_current_owner
from core.db import get_session_factory


def get_db() -> Generator[Session, None, None]:
    """Request-scoped session; the whole calendar operation commits or rolls back as one unit."""
    session = get_session_factory()()
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


def get_today() -> date:
    """Calendar "today" for a request. Overridden in tests to pin the clock."""
    return date.today()


DbSession = Annotated[Session, Depends(get_db)]
CurrentOwner = Annotated[OwnerPrincipal, Depends(get_current_owner)]
Today = Annotated[date, Depends(get_today)]
