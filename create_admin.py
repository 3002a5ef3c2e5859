# create_admin.py
import asyncio
import sys
from getpass import getpass

from pymongo.errors import PyMongoError

try:
    from school_app.core.config import DATABASE_NAME
    from school_app.core.security import get_password_hash
    from school_app.db.database import init_db, close_db
    from school_app.models.user import User, UserRole
except ImportError as e:
    print(f"Error importing application modules: {e}")
    print("Run the script from the project root with the virtualenv active.")
    sys.exit(1)


async def create_initial_admin():
    """Create the first admin account interactively."""
    print("--- Create Initial Admin User ---")

    try:
        await init_db()
        print(f"Connected to database: {DATABASE_NAME}")
    except PyMongoError as e:
        print(f"Error connecting to database: {e}")
        return

    try:
        while True:
            username = input("Enter admin username: ").strip()
            if username:
                break
            print("Username cannot be empty.")

        if await User.find_one(User.username == username):
            print(f"Error: Username '{username}' already exists.")
            return

        while True:
            password = getpass("Enter admin password: ")
            if not password:
                print("Password cannot be empty.")
                continue
            if password == getpass("Confirm admin password: "):
                break
            print("Passwords do not match. Please try again.")

        email = input("Enter admin email (optional, press Enter to skip): ").strip() or None
        full_name = input("Enter admin full name (optional, press Enter to skip): ").strip() or None

        admin_user = User(
            username=username,
            email=email,
            full_name=full_name,
            hashed_password=get_password_hash(password),
            role=UserRole.ADMIN,
            disabled=False,
        )
        try:
            await admin_user.insert()
            print(f"Admin user '{username}' created successfully!")
        except PyMongoError as e:
            print(f"Error saving admin user to database: {e}")
    finally:
        close_db()
        print("Database connection closed.")


if __name__ == "__main__":
    asyncio.run(create_initial_admin())
