import asyncio
import getpass
from database import build_store
from models.user import UserModel
from utils.passwords import hash_password
from constants import ROLE_LABELS


async def add_user(username: str, name: str, role: str, password: str):
    store = build_store()
    try:
        username = username.strip().lower()
        if await store.users.get(username):
            print(f"User {username} already exists.")
            return

        new_user = UserModel(
            username=username,
            name=name,
            role=role,
            password_hash=hash_password(password),
        )
        await store.users.put(username, new_user.model_dump(mode="json"))
        print(f"✅ Successfully added user: {username} ({ROLE_LABELS.get(role, role)})")
    finally:
        store.close()


if __name__ == "__main__":
    import argparse
    parser = argparse.ArgumentParser(description='Add a dashboard user (needs MONGO_URI to persist)')
    parser.add_argument('username', type=str, help='Login name')
    parser.add_argument('--name', type=str, default='Admin User', help='Display name')
    parser.add_argument('--role', type=str, default='admin', choices=sorted(ROLE_LABELS), help='Dashboard role')

    args = parser.parse_args()
    password = getpass.getpass("Password: ")

    asyncio.run(add_user(args.username, args.name, args.role, password))
