from __future__ import annotations

import logging
from typing import Optional

from sqlalchemy import select
from sqlalchemy.orm import Session

from core.config import get_settings
from core.models import Period

logger = logging.getLogger(__name__)


class PeriodStore:
    """Access to the externally-owned period (color tag) entity."""

    def __init__(self, session: Session):
        self.session = session

    def find_default(self, owner_id: str) -> Optional[Period]:
        stmt = select(Period).where(Period.owner_id == owner_id).order_by(Period.id).limit(1)
        return self.session.execute(stmt).scalar_one_or_none()

    def create(self, owner_id: str, name: str, color: str, description: str = "") -> Period:
        period = Period(owner_id=owner_id, name=name, color=color, description=description)
        self.session.add(period)
        self.session.flush()
        return period

    def ensure_default(self, owner_id: str) -> Period:
        period = self.find_default(owner_id)
        if period is not None:
            return period
        settings = get_settings()
        period = self.create(
            owner_id,
            name=settings.default_period_name,
            color=settings.default_period_color,
            description=settings.default_period_description,
        )
        logger.info("default_period_created", extra={"owner_id": owner_id, "period_id": period.id})
        return period
