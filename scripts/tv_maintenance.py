"""
TV slot pool maintenance.

Commands:
    reset-slots     Return every slot to the pool and clear the history
    reset-accounts  Keep only the first account (1a8) with 8 fresh slots
    passwords       Give every slot a new random 4-digit password
    create-accounts Pre-create the next N standard accounts

Usage:
    python -m scripts.tv_maintenance reset-slots --yes
    python -m scripts.tv_maintenance create-accounts --count 5
"""

import argparse
import asyncio
import sys
from pathlib import Path

from dotenv import load_dotenv

# Load environment variables
load_dotenv()

# Add the project root to the path to import the app
sys.path.insert(0, str(Path(__file__).parent.parent))

from app.core.database import async_session_maker
from app.core.tv_assignments import TVAssignmentService

DESTRUCTIVE_COMMANDS = {"reset-slots", "reset-accounts", "passwords"}


async def create_accounts(session, count: int) -> int:
    created = 0
    for _ in range(count):
        index = await TVAssignmentService.determine_next_account_index(session)
        if await TVAssignmentService.create_account_batch(session, index):
            created += 1
    return created


async def run(command: str, count: int) -> None:
    async with async_session_maker() as session:
        if command == "reset-slots":
            result = await TVAssignmentService.reset_tv_slots_to_start(session)
            print(f"   [+] {result['slots_reset']} slot(s) reset")
        elif command == "reset-accounts":
            result = await TVAssignmentService.reset_accounts_to_first(session)
            print(f"   [+] {result['message']}")
        elif command == "passwords":
            updated = await TVAssignmentService.randomize_all_tv_passwords(session)
            print(f"   [+] {updated} password(s) regenerated")
        elif command == "create-accounts":
            created = await create_accounts(session, count)
            print(f"   [+] {created} account(s) created")


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="TV slot pool maintenance")
    parser.add_argument(
        "command",
        choices=["reset-slots", "reset-accounts", "passwords", "create-accounts"],
    )
    parser.add_argument("--count", type=int, default=1, help="Accounts to create (create-accounts)")
    parser.add_argument("--yes", action="store_true", help="Confirm destructive commands")
    args = parser.parse_args()

    if args.command in DESTRUCTIVE_COMMANDS and not args.yes:
        parser.error(f"'{args.command}' changes every slot; pass --yes to confirm")

    asyncio.run(run(args.command, args.count))
