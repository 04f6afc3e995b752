#!/usr/bin/env python3
"""
Development Database Reset and Seed Utility

This script resets your development database and seeds it with test users
and a year of timer sessions, so the calendar and contribution graph have
something to show.

Usage:
    python dev_reset.py                    # Reset, create users and sessions
    python dev_reset.py --skip-reset       # Only create users (don't reset DB)
    python dev_reset.py --no-sessions      # Create users without sessions
    python dev_reset.py --user-only EMAIL  # Create a single custom test user

Safety: This script will ONLY run in development mode. It checks:
    - DATABASE_URL must be SQLite or contain 'localhost' or '127.0.0.1'
    - Will prompt for confirmation before resetting

Test User Credentials:
    Email: test@example.com
    Password: testpass123
"""

import argparse
import os
import random
import sys
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()

from sqlalchemy.orm import Session
from timetracker.database import SessionLocal, engine
from timetracker.exceptions import ConflictError
from timetracker.models.models import Base, TimerSession, User
from timetracker.schemas.user import UserCreate
from timetracker.services.auth_service import create_user
from timetracker.utils.time_utils import utcnow

# Colors for terminal output
class Colors:
    HEADER = '\033[95m'
    OKGREEN = '\033[92m'
    OKCYAN = '\033[96m'
    WARNING = '\033[93m'
    FAIL = '\033[91m'
    ENDC = '\033[0m'
    BOLD = '\033[1m'

def print_header(text):
    print(f"\n{Colors.HEADER}{Colors.BOLD}{text}{Colors.ENDC}")

def print_success(text):
    print(f"{Colors.OKGREEN}✓ {text}{Colors.ENDC}")

def print_warning(text):
    print(f"{Colors.WARNING}⚠ {text}{Colors.ENDC}")

def print_error(text):
    print(f"{Colors.FAIL}✗ {text}{Colors.ENDC}")

def print_info(text):
    print(f"{Colors.OKCYAN}ℹ {text}{Colors.ENDC}")

TEST_USERS = [
    {"email": "test@example.com", "password": "testpass123", "name": "Test User"},
    {"email": "writer@example.com", "password": "writer123", "name": "Night Owl Writer"},
    {"email": "coder@example.com", "password": "coder123", "name": "Weekend Coder"},
]

def check_development_environment() -> bool:
    """Verify we're running in a development environment"""
    db_url = str(engine.url)

    is_local = db_url.startswith("sqlite") or any(host in db_url.lower() for host in ['localhost', '127.0.0.1'])
    if not is_local:
        print_error("SAFETY CHECK FAILED!")
        print_error(f"DATABASE_URL does not appear to be local: {engine.url!r}")
        print_error("This script should only be run in development environments.")
        return False

    print_success(f"Development environment confirmed: {engine.url!r}")
    return True

def confirm_reset() -> bool:
    """Ask user to confirm database reset"""
    print_warning("This will DELETE ALL DATA in your local database")
    response = input(f"{Colors.BOLD}Are you sure you want to continue? (yes/no): {Colors.ENDC}").strip().lower()
    return response in ['yes', 'y']

def reset_database():
    Base.metadata.drop_all(bind=engine)
    Base.metadata.create_all(bind=engine)

def create_test_user(db: Session, email: str, password: str, name: str):
    """Create a single test user, or return None if the email is taken"""
    try:
        user = create_user(db, UserCreate(email=email, password=password, name=name))
    except ConflictError:
        print_warning(f"User {email} already exists, skipping...")
        return None
    print_success(f"Created user: {email} (ID: {user.id})")
    return user

def seed_sessions(db: Session, user: User, days: int = 365, seed: int = 0) -> int:
    """Create a plausible year of stopped sessions ending yesterday"""
    rng = random.Random(seed)
    today = utcnow().replace(hour=0, minute=0, second=0, microsecond=0)
    created = 0

    for offset in range(days, 0, -1):
        day = today - timedelta(days=offset)
        # Quieter weekends, and some days off entirely
        if rng.random() < (0.6 if day.weekday() >= 5 else 0.2):
            continue
        start = day + timedelta(hours=rng.randint(7, 10), minutes=rng.choice([0, 15, 30, 45]))
        for _ in range(rng.randint(1, 4)):
            duration = rng.randint(15, 120) * 60
            db.add(TimerSession(
                user_id=user.id,
                start_time=start,
                end_time=start + timedelta(seconds=duration),
                duration=duration,
                notes=rng.choice([None, "Focused work", "Code review", "Planning", "Writing"]),
                created_at=start
            ))
            created += 1
            start += timedelta(seconds=duration, minutes=rng.randint(10, 90))

    db.commit()
    return created

def main():
    parser = argparse.ArgumentParser(
        description="Reset development database and seed test data",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python dev_reset.py                   # Full reset with users and sessions
  python dev_reset.py --skip-reset      # Only create users (no DB reset)
  python dev_reset.py --user-only EMAIL # Create a single custom test user
        """
    )

    parser.add_argument('--skip-reset', action='store_true',
                      help='Skip database reset, only create users')
    parser.add_argument('--no-sessions', action='store_true',
                      help='Do not generate timer sessions for the seeded users')
    parser.add_argument('--user-only', metavar='EMAIL',
                      help='Create only a single test user with specified email')
    parser.add_argument('--no-confirm', action='store_true',
                      help='Skip confirmation prompt (use with caution)')

    args = parser.parse_args()

    if not check_development_environment():
        sys.exit(1)

    print_header("Development Database Reset Utility")

    if not args.skip_reset:
        if not args.no_confirm and not confirm_reset():
            print_info("Reset cancelled by user")
            sys.exit(0)

        print_header("Resetting Database")
        reset_database()
        print_success("Database reset successfully!")
    else:
        print_info("Skipping database reset")
        Base.metadata.create_all(bind=engine)

    db = SessionLocal()
    try:
        if args.user_only:
            email = args.user_only
            password = input("Enter password (or press Enter for 'testpass123'): ").strip() or "testpass123"
            name = input("Enter name (or press Enter for 'Test User'): ").strip() or "Test User"

            create_test_user(db, email, password, name)
            print_info(f"\nCredentials: {email} / {password}")
        else:
            print_header("Creating Test Users")
            for index, user_data in enumerate(TEST_USERS):
                user = create_test_user(db, **user_data)
                if user and not args.no_sessions:
                    count = seed_sessions(db, user, seed=index)
                    print_info(f"  {count} sessions for {user.email}")
    finally:
        db.close()

    if not args.user_only:
        print_header("Test User Credentials")
        for user_data in TEST_USERS:
            print(f"  {user_data['email']} / {user_data['password']}")
        print(f"""
{Colors.BOLD}API Usage Example:{Colors.ENDC}
  POST http://localhost:8000/api/auth/signin
  Body: {{"email": "test@example.com", "password": "testpass123"}}
""")

    print_success("Development environment ready for testing!")

if __name__ == "__main__":
    main()
