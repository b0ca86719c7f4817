import uuid

from loguru import logger
from sqlalchemy import or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from app.clock import utcnow
from app.errors import ConflictError, NotFoundError
from app.security.sessions import SessionData
from app.users.models import ROLE_ADMIN
from . import models, schemas
from .models import OwnedBy, System
from .predefined import PREDEFINED_CATEGORIES


SORT_COLUMNS = {
    "name": models.Category.name,
    "created_at": models.Category.created_at,
}


# ================= HELPERS =================
def visible_to(user_id: uuid.UUID):
    """Categories a user may read: their own plus the predefined ones."""
    return or_(
        models.Category.user_id == user_id,
        models.Category.is_predefined.is_(True),
    )


def _in_scope(query, ownership):
    match ownership:
        case System():
            return query.filter(models.Category.user_id.is_(None))
        case OwnedBy(user_id=owner_id):
            return query.filter(models.Category.user_id == owner_id)
    raise TypeError(f"Unknown ownership {ownership!r}")


def name_exists(db: Session, ownership, name: str, exclude_id: uuid.UUID | None = None) -> bool:
    query = _in_scope(db.query(models.Category.id), ownership).filter(models.Category.name == name)
    if exclude_id is not None:
        query = query.filter(models.Category.id != exclude_id)
    return query.first() is not None


def slug_exists(db: Session, ownership, slug: str, exclude_id: uuid.UUID | None = None) -> bool:
    query = _in_scope(db.query(models.Category.id), ownership).filter(models.Category.slug == slug)
    if exclude_id is not None:
        query = query.filter(models.Category.id != exclude_id)
    return query.first() is not None


def can_modify(category: models.Category, session: SessionData) -> bool:
    match category.ownership:
        case System():
            return session.role == ROLE_ADMIN
        case OwnedBy(user_id=owner_id):
            return owner_id == session.user_id
    return False


def find_visible_category(db: Session, user_id: uuid.UUID, category_id: uuid.UUID):
    return (
        db.query(models.Category)
        .filter(models.Category.id == category_id)
        .filter(visible_to(user_id))
        .first()
    )


def _commit_unique(db: Session, db_category: models.Category):
    # The unique constraints are authoritative; the pre-checks only give nicer messages
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        raise ConflictError("Category name or slug already exists")
    db.refresh(db_category)
    return db_category


# ================= CREATE =================
def create_category(db: Session, user_id: uuid.UUID, category: schemas.CategoryCreate):
    scope = OwnedBy(user_id)

    if name_exists(db, scope, category.name):
        raise ConflictError("Category name already exists")

    if slug_exists(db, scope, category.slug):
        raise ConflictError("Category slug already exists")

    db_category = models.Category(
        user_id=user_id,
        name=category.name,
        slug=category.slug,
        color=category.color,
        is_predefined=False,
    )

    db.add(db_category)
    return _commit_unique(db, db_category)


# ================= READ =================
def get_category(db: Session, user_id: uuid.UUID, category_id: uuid.UUID):
    db_category = find_visible_category(db, user_id, category_id)
    if not db_category:
        raise NotFoundError("Category not found")
    return db_category


def list_categories(
    db: Session,
    user_id: uuid.UUID,
    include_predefined: bool = True,
    page: int = 1,
    limit: int = 50,
    sort_by: str = "name",
    sort_order: str = "asc",
):
    if include_predefined:
        query = db.query(models.Category).filter(visible_to(user_id))
    else:
        query = db.query(models.Category).filter(models.Category.user_id == user_id)

    total = query.count()

    column = SORT_COLUMNS.get(sort_by, models.Category.name)
    ordering = column.desc() if sort_order == "desc" else column.asc()

    categories = (
        query
        .order_by(models.Category.is_predefined.desc(), ordering)
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )
    return categories, total


# ================= UPDATE =================
def update_category(
    db: Session,
    session: SessionData,
    category_id: uuid.UUID,
    category: schemas.CategoryUpdate,
):
    db_category = (
        db.query(models.Category)
        .filter(models.Category.id == category_id)
        .first()
    )

    # Not owned and not found look the same to the caller
    if not db_category or not can_modify(db_category, session):
        raise NotFoundError("Category not found")

    data = {k: v for k, v in category.model_dump(exclude_unset=True).items() if v is not None}
    scope = db_category.ownership

    if "name" in data and name_exists(db, scope, data["name"], exclude_id=db_category.id):
        raise ConflictError("Category name already exists")

    if "slug" in data and slug_exists(db, scope, data["slug"], exclude_id=db_category.id):
        raise ConflictError("Category slug already exists")

    for field, value in data.items():
        setattr(db_category, field, value)
    db_category.updated_at = utcnow()

    return _commit_unique(db, db_category)


# ================= DELETE =================
def delete_category(db: Session, session: SessionData, category_id: uuid.UUID) -> bool:
    db_category = (
        db.query(models.Category)
        .filter(models.Category.id == category_id)
        .first()
    )

    if not db_category or not can_modify(db_category, session):
        return False

    db.delete(db_category)
    db.commit()
    return True


# ================= PREDEFINED =================
def sync_predefined_categories(db: Session) -> int:
    """Insert any predefined category that is missing. Returns how many were added."""
    existing_slugs = {
        slug for (slug,) in
        db.query(models.Category.slug).filter(models.Category.is_predefined.is_(True)).all()
    }

    added = 0
    for predefined in PREDEFINED_CATEGORIES:
        if predefined["slug"] in existing_slugs:
            continue
        db.add(
            models.Category(
                user_id=None,
                name=predefined["name"],
                slug=predefined["slug"],
                color=predefined["color"],
                is_predefined=True,
            )
        )
        added += 1

    if not added:
        return 0

    try:
        db.commit()
    except IntegrityError:
        # another worker seeded the same rows first
        db.rollback()
        logger.info("Predefined categories were seeded concurrently, nothing added")
        return 0

    logger.info(f"Seeded {added} predefined categories")
    return added
