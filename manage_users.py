#!/usr/bin/env python3
"""
User management CLI for the media gallery.
Run this script to add, modify, or remove users.

Usage:
    python manage_users.py add <username> <password> [user|admin]
    python manage_users.py list
    python manage_users.py delete <username>
    python manage_users.py passwd <username> <new_password>
    python manage_users.py role <username> <user|admin>
"""

import asyncio
import sys

from app.config import DATABASE_PATH
from app.domain import Role
from app.infrastructure.database import connect, init_schema
from app.infrastructure.repositories import AsyncUserRepository

ROLES = {role.value for role in Role}


def print_usage():
    print(__doc__)


async def cmd_add(repo: AsyncUserRepository, args):
    if len(args) < 2:
        print("Error: add requires <username> <password> [user|admin]")
        print("Example: python manage_users.py add admin mypassword admin")
        return 1

    username, password = args[0], args[1]
    role = args[2].lower() if len(args) > 2 else Role.USER.value
    if role not in ROLES:
        print(f"Error: Role must be one of {', '.join(sorted(ROLES))}")
        return 1

    if len(password) < 4:
        print("Error: Password must be at least 4 characters")
        return 1

    if await repo.get_by_username(username):
        print(f"Error: User '{username}' already exists")
        return 1

    user_id = await repo.create(username, password, Role(role))
    print(f"User '{username}' created successfully (ID: {user_id}, role: {role})")
    return 0


async def cmd_list(repo: AsyncUserRepository, args):
    users = await repo.list_with_groups()
    if not users:
        print("No users found. Create one with: python manage_users.py add <username> <password> [role]")
        return 0

    print(f"{'ID':<5} {'Username':<20} {'Role':<8} {'Groups':<20} {'Created'}")
    print("-" * 80)
    for user in users:
        groups = ",".join(str(g) for g in user["group_ids"]) or "-"
        print(f"{user['id']:<5} {user['username']:<20} {user['role']:<8} {groups:<20} {user['created_at']}")
    return 0


async def cmd_delete(repo: AsyncUserRepository, args):
    if len(args) < 1:
        print("Error: delete requires <username>")
        return 1

    username = args[0]
    user = await repo.get_by_username(username)
    if not user:
        print(f"Error: User '{username}' not found")
        return 1

    # Confirm deletion
    confirm = input(f"Delete user '{username}' ({user['role']})? [y/N]: ")
    if confirm.lower() != 'y':
        print("Cancelled")
        return 0

    await repo.delete(user['id'])
    print(f"User '{username}' deleted")
    return 0


async def cmd_passwd(repo: AsyncUserRepository, args):
    if len(args) < 2:
        print("Error: passwd requires <username> <new_password>")
        return 1

    username, new_password = args[0], args[1]

    if len(new_password) < 4:
        print("Error: Password must be at least 4 characters")
        return 1

    user = await repo.get_by_username(username)
    if not user:
        print(f"Error: User '{username}' not found")
        return 1

    await repo.update_password(user['id'], new_password)
    print(f"Password updated for '{username}'")
    return 0


async def cmd_role(repo: AsyncUserRepository, args):
    if len(args) < 2 or args[1].lower() not in ROLES:
        print("Error: role requires <username> <user|admin>")
        return 1

    username, role = args[0], args[1].lower()
    user = await repo.get_by_username(username)
    if not user:
        print(f"Error: User '{username}' not found")
        return 1

    await repo.set_role(user['id'], Role(role))
    print(f"Role for '{username}' changed to '{role}'")
    return 0


COMMANDS = {
    'add': cmd_add,
    'list': cmd_list,
    'delete': cmd_delete,
    'passwd': cmd_passwd,
    'role': cmd_role,
}


async def run(command: str, args: list[str]) -> int:
    conn = await connect(DATABASE_PATH)
    try:
        await init_schema(conn)
        return await COMMANDS[command](AsyncUserRepository(conn), args)
    finally:
        await conn.close()


def main():
    if len(sys.argv) < 2:
        print_usage()
        return 1

    command = sys.argv[1].lower()
    if command not in COMMANDS:
        print(f"Unknown command: {command}")
        print_usage()
        return 1

    return asyncio.run(run(command, sys.argv[2:]))


if __name__ == "__main__":
    sys.exit(main())
