import logging
from typing import List

from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import Conflict, ValidationFailed
from ..utils import slugify
from .common import commit

logger = logging.getLogger(__name__)

DUPLICATE_CATEGORY = "category already exists"


class CategoryService:
    def __init__(self, db: Session):
        self.db = db

    def list_all(self) -> List[models.Category]:
        return self.db.query(models.Category).order_by(models.Category.name.asc()).all()

    def create(self, payload: schemas.CategoryCreate) -> models.Category:
        slug = slugify(payload.name)
        if not slug:
            raise ValidationFailed("name must contain at least one letter or digit")
        if self.db.query(models.Category.id).filter(models.Category.slug == slug).first():
            raise Conflict(DUPLICATE_CATEGORY)

        category = models.Category(name=payload.name, slug=slug, description=payload.description)
        self.db.add(category)
        commit(self.db, DUPLICATE_CATEGORY)
        self.db.refresh(category)
        logger.info("category created id=%s slug=%s", category.id, slug)
        return category
