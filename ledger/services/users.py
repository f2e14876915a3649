# services/users.py
import structlog
from sqlalchemy.exc import IntegrityError

from ledger.errors import ConflictError, NotFoundError, ValidationError
from ledger.models.user import User

log = structlog.get_logger(__name__)


def create_user(session, clerk_id, name, email):
    if not clerk_id or not name or not email:
        raise ValidationError("Missing required fields")
    if session.query(User).filter(User.clerk_id == clerk_id).first() is not None:
        raise ConflictError("User already exists")
    user = User(clerk_id=clerk_id, name=name, email=email)
    session.add(user)
    try:
        session.flush()
    except IntegrityError:
        raise ConflictError("User already exists")
    log.info("user_created", clerk_id=clerk_id)
    return user


def get_user(session, clerk_id):
    user = session.query(User).filter(User.clerk_id == clerk_id).first()
    if user is None:
        raise NotFoundError("User not found")
    return user
