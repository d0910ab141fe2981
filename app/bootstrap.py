# app/bootstrap.py
"""Create the first super admin: ``python -m app.bootstrap EMAIL PASSWORD``."""

import argparse
import logging
from typing import Optional

from sqlmodel import Session, select

from .auth import AuthService
from .config import configure_logging, get_settings
from .data import SUPER_ADMIN_ROLE
from .db import init_db, make_engine
from .models import AdminUser, User

logger = logging.getLogger(__name__)


def create_super_admin(session: Session, auth: AuthService, email: str, password: str,
                       name: Optional[str] = None) -> AdminUser:
    email = email.strip().lower()
    user = session.exec(select(User).where(User.email == email)).first()
    if user is None:
        user = User(email=email, password_hash=auth.hash_password(password))
        session.add(user)
        session.flush()

    admin = session.exec(select(AdminUser).where(AdminUser.user_id == user.id)).first()
    if admin is None:
        admin = AdminUser(user_id=user.id, email=email, name=name)
    admin.role = SUPER_ADMIN_ROLE
    admin.is_active = True
    session.add(admin)
    session.commit()
    session.refresh(admin)
    logger.info("Super admin ready: %s", email)
    return admin


def main(argv=None) -> None:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("email")
    parser.add_argument("password")
    parser.add_argument("--name")
    args = parser.parse_args(argv)

    settings = get_settings()
    configure_logging(settings.log_level)
    engine = make_engine(settings.database_url)
    init_db(engine)
    with Session(engine) as session:
        create_super_admin(session, AuthService(settings), args.email, args.password, args.name)


if __name__ == "__main__":
    main()
