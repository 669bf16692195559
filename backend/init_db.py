"""Initialize database (create tables, optional admin). Run: python backend/init_db.py"""
import logging
import os
from crowdfund.auth import hash_password
from crowdfund.database import Base, SessionLocal, engine
from crowdfund.logging_config import setup_logging
from crowdfund import campaign_models, comment_models, complaint_models, donation_models, user_models  # noqa: F401
from crowdfund.roles import Role

logger = logging.getLogger(__name__)


def bootstrap_admin(db, email: str, password: str, name: str = "Administrator"):
    """Create the admin account, or promote an existing user with that email."""
    email = email.strip().lower()
    user = db.query(user_models.User).filter(user_models.User.email == email).first()
    if user:
        if user.role != Role.ADMIN.value:
            user.role = Role.ADMIN.value
            logger.info(f"Promoted existing user {user.id} to admin")
    else:
        user = user_models.User(
            name=name,
            email=email,
            password_hash=hash_password(password),
            role=Role.ADMIN.value,
            is_verified=True,
        )
        db.add(user)
        logger.info(f"Created admin account {email}")
    db.commit()
    return user


def init():
    Base.metadata.create_all(bind=engine)
    email = os.getenv('ADMIN_EMAIL')
    password = os.getenv('ADMIN_PASSWORD')
    if email and password:
        db = SessionLocal()
        try:
            bootstrap_admin(db, email, password)
        finally:
            db.close()


if __name__ == '__main__':
    setup_logging()
    logger.info('Initializing DB...')
    init()
    logger.info('DB initialized.')
