"""
Create (or promote) the default administrator from ADMIN_EMAIL / ADMIN_PASSWORD / ADMIN_NAME
"""
import logging

from topledger.auth import ensure_admin
from topledger.config import get_settings
from topledger.infrastructure.db.session import get_db

logging.basicConfig(level=logging.INFO)


def main():
    settings = get_settings()
    db = next(get_db())
    try:
        user, created = ensure_admin(
            db,
            email=settings.ADMIN_EMAIL,
            password=settings.ADMIN_PASSWORD,
            name=settings.ADMIN_NAME,
        )
    finally:
        db.close()

    if created:
        print("Created admin:")
        print(f"  Email: {user.email}")
        print("  Password: (ADMIN_PASSWORD)")
    else:
        print(f"Admin already exists: {user.email} (ID: {user.id})")


if __name__ == "__main__":
    main()
