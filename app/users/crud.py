import uuid

from sqlalchemy.orm import Session

from app.users.models import User, ROLE_USER


def create_user(db: Session, email: str, name: str, hashed_password: str, role: str = ROLE_USER):
    new_user = User(
        email=email.lower(),
        name=name,
        hashed_password=hashed_password,
        role=role,
    )
    db.add(new_user)
    db.commit()
    db.refresh(new_user)
    return new_user


def get_user_by_email(db: Session, email: str):
    return db.query(User).filter(User.email == email.strip().lower()).first()


def get_user_by_id(db: Session, user_id: uuid.UUID):
    return db.query(User).filter(User.id == user_id).first()


def email_exists(db: Session, email: str, exclude_user_id: uuid.UUID | None = None) -> bool:
    query = db.query(User.id).filter(User.email == email.strip().lower())
    if exclude_user_id is not None:
        query = query.filter(User.id != exclude_user_id)
    return query.first() is not None


def get_all_users(db: Session, skip: int = 0, limit: int = 50):
    query = db.query(User)
    total = query.count()
    users = query.order_by(User.created_at.desc()).offset(skip).limit(limit).all()
    return users, total


def update_user(db: Session, user: User, changes: dict):
    for field, value in changes.items():
        setattr(user, field, value)

    db.commit()
    db.refresh(user)
    return user
