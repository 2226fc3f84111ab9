# backend/venuebook/repositories/field_repository.py
"""Read access to the venue's fields."""

import logging

from sqlalchemy.orm import Session

from ..models.field import Field
from .base_repository import BaseRepository


class FieldRepository(BaseRepository[Field]):
    """Fields are owned by the venue catalogue; bookings only look them up."""

    def __init__(self, db: Session):
        super().__init__(db, Field)
        self.logger = logging.getLogger(__name__)
