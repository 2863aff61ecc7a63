from sqlalchemy.orm import Session

from blogauth.models.user import Role, User
from blogauth.services.errors import store_errors
from blogauth.services.security import hash_password


def get_by_username(db: Session, username: str) -> User | None:
    with store_errors(db, "user lookup"):
        return db.query(User).filter(User.username == username).first()


def username_or_email_taken(db: Session, username: str, email: str) -> str | None:
    """Return which field collides with an existing account, if any."""
    with store_errors(db, "user lookup"):
        if db.query(User.id).filter(User.username == username).first():
            return "username"
        if db.query(User.id).filter(User.email == email).first():
            return "email"
    return None


def create_user(db: Session, username: str, email: str, password: str, role: Role = Role.USER) -> User:
    user = User(username=username, email=email, password_hash=hash_password(password), role=role)
    with store_errors(db, "user create"):
        db.add(user)
        db.commit()
        db.refresh(user)
    return user


def list_users(db: Session) -> list[User]:
    with store_errors(db, "user list"):
        return db.query(User).order_by(User.id).all()


def save(db: Session, user: User) -> User:
    with store_errors(db, "user update"):
        db.add(user)
        db.commit()
        db.refresh(user)
    return user


def record_failed_login(db: Session, user: User) -> None:
    user.failed_login_attempts = (user.failed_login_attempts or 0) + 1
    save(db, user)


def reset_failed_logins(db: Session, user: User) -> None:
    if user.failed_login_attempts:
        user.failed_login_attempts = 0
        save(db, user)


def enable_mfa(db: Session, user: User, secret: str) -> User:
    user.mfa_enabled = True
    user.mfa_secret = secret
    return save(db, user)


def disable_mfa(db: Session, user: User) -> User:
    user.mfa_enabled = False
    user.mfa_secret = None
    return save(db, user)


def update_password(db: Session, user: User, new_password: str) -> User:
    user.password_hash = hash_password(new_password)
    return save(db, user)
