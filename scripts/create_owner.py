#!/usr/bin/env python3
"""
=====================================================
Voice Lead Agent - Owner Account Creation Script
=====================================================
Create a dashboard login for a business owner.

Usage:
    python scripts/create_owner.py [--superuser]

Prompts for business id, email and password. DATABASE_URL is read
from the environment (or .env).
"""

import argparse
import asyncio
import getpass
import os
import re
import sys

# Add parent directory to path for imports
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from config.settings import get_settings
from services.dashboard.auth_service import AuthService
from services.database import Database, DatabaseUnavailableError


def validate_password(password: str) -> tuple[bool, str]:
    """
    Validate password meets security requirements.

    Returns:
        Tuple of (is_valid, error_message)
    """
    if len(password) < 12:
        return False, "Password must be at least 12 characters long"

    if not re.search(r'[A-Z]', password):
        return False, "Password must contain at least one uppercase letter"

    if not re.search(r'[a-z]', password):
        return False, "Password must contain at least one lowercase letter"

    if not re.search(r'\d', password):
        return False, "Password must contain at least one digit"

    weak_passwords = ['password', 'admin', '123456', 'qwerty', 'letmein', 'welcome']
    if any(wp in password.lower() for wp in weak_passwords):
        return False, "Password contains common weak patterns"

    return True, ""


async def create_owner(database_url: str, email: str, password: str, business_id: str, is_superuser: bool) -> bool:
    database = Database(database_url)
    auth = AuthService(database)
    try:
        if not is_superuser:
            pool = await database.get_pool()
            exists = await pool.fetchval("SELECT 1 FROM businesses WHERE id = $1", business_id)
            if not exists:
                print(f"\nError: Business '{business_id}' does not exist.")
                return False

        success, error = await auth.create_user(email, password, business_id, is_superuser)
        if not success:
            print(f"\nError: {error}")
        return success
    except DatabaseUnavailableError as e:
        print(f"\nDatabase unavailable: {e}")
        return False
    finally:
        await database.close()


def main():
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Create a dashboard owner account")
    parser.add_argument("--superuser", action="store_true", help="Account can see every business")
    args = parser.parse_args()

    print("=" * 60)
    print("Voice Lead Agent - Owner Account Creation")
    print("=" * 60)
    print()

    database_url = get_settings().database_url
    if not database_url:
        database_url = input("Enter PostgreSQL connection URL: ").strip()
        if not database_url:
            print("Error: Database URL is required.")
            sys.exit(1)

    business_id = input("Business ID: ").strip()
    if not business_id and not args.superuser:
        print("Error: Business ID is required.")
        sys.exit(1)

    email = input("Email: ").strip()
    if not email or '@' not in email:
        print("Error: Valid email is required.")
        sys.exit(1)

    password = getpass.getpass("Password: ")
    is_valid, error_msg = validate_password(password)
    if not is_valid:
        print(f"Error: {error_msg}")
        sys.exit(1)

    if password != getpass.getpass("Confirm password: "):
        print("Error: Passwords do not match.")
        sys.exit(1)

    print("\nCreating owner account...")
    success = asyncio.run(create_owner(
        database_url,
        email,
        password,
        business_id or None,
        args.superuser,
    ))

    if success:
        print()
        print("=" * 60)
        print(f"Owner '{email}' created successfully!")
        print("=" * 60)
    else:
        sys.exit(1)


if __name__ == "__main__":
    main()
