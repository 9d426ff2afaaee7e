"""Drop and recreate every table, optionally seeding an admin account.

Registration only ever creates ``user`` accounts, so the first admin has to be
created here:

    python reset_db.py --admin-email root@example.com --admin-username root
"""
import argparse
import getpass

from story_reader import models
from story_reader.auth import get_password_hash
from story_reader.config import get_settings
from story_reader.database import Base, SessionLocal, engine


def reset_tables():
    print("Dropping all tables...")
    Base.metadata.drop_all(bind=engine)
    print("Creating new tables...")
    Base.metadata.create_all(bind=engine)


def create_admin(username, email, password):
    db = SessionLocal()
    try:
        admin = models.User(
            username=username,
            email=email,
            password_hash=get_password_hash(password, rounds=get_settings().bcrypt_rounds),
            role=models.Role.ADMIN,
            is_active=True,
        )
        db.add(admin)
        db.commit()
        print(f"Admin account '{username}' created.")
    finally:
        db.close()


def main():
    parser = argparse.ArgumentParser(description="Reset the story reader database")
    parser.add_argument("--yes", action="store_true", help="skip the confirmation prompt")
    parser.add_argument("--admin-username")
    parser.add_argument("--admin-email")
    args = parser.parse_args()

    print(f"Database: {engine.url.render_as_string(hide_password=True)}")
    print("WARNING: This will delete all users, stories, chapters, bookmarks and reading history.")
    if not args.yes and input("Type 'reset' to continue: ").strip() != "reset":
        print("Aborted.")
        return

    reset_tables()

    if args.admin_email:
        username = args.admin_username or args.admin_email.split("@")[0]
        create_admin(username, args.admin_email, getpass.getpass("Admin password: "))

    print("Database is fresh and ready.")


if __name__ == "__main__":
    main()
