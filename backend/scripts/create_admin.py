"""CLI script to bootstrap an admin account in the backend DB.
Usage: python scripts/create_admin.py EMAIL PASSWORD
"""
import sys
import argparse
import pathlib
# Ensure `backend/` is on sys.path so `ogs` package imports work when running this script directly
ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))
from sqlmodel import Session
from ogs.database import engine, create_db_and_tables
from ogs import errors, services


def main(email: str, password: str) -> int:
    """Create the admin account and print the outcome.

    Returns a process exit code so the script can be chained in shell
    provisioning steps.
    """
    create_db_and_tables()
    with Session(engine) as session:
        try:
            account = services.AuthService(session).create_account(email, password, role="admin")
        except errors.DomainError as e:
            print(f'Could not create admin: {e}')
            return 1
    print(f'Created admin account {account.email} (id {account.id})')
    return 0


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description='Create an admin account')
    parser.add_argument('email')
    parser.add_argument('password')
    args = parser.parse_args()
    sys.exit(main(args.email, args.password))
