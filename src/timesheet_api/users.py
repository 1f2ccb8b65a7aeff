"""
Illustrative user directory.

Users come from a JSON document of {id, name, email, password_hash, role}
objects. When that document is missing a few demo accounts are created in
memory so the API is usable out of the box. None of this is meant to be a
real identity provider.
"""
from __future__ import annotations

import json
import logging
from typing import Dict, List, Optional

from werkzeug.security import check_password_hash, generate_password_hash

from .errors import AuthenticationError
from .models import UserEntity

logger = logging.getLogger(__name__)

# (id, name, email, password, role)
DEMO_ACCOUNTS = [
    (1, "John Doe", "john@example.com", "password123", "employee"),
    (2, "Jane Smith", "jane@example.com", "password123", "employee"),
    (3, "Admin User", "admin@example.com", "admin123", "admin"),
]


def demo_users() -> List[UserEntity]:
    return [
        {
            "id": uid,
            "name": name,
            "email": email,
            "password_hash": generate_password_hash(password),
            "role": role,
        }
        for uid, name, email, password, role in DEMO_ACCOUNTS
    ]


def load_users(path: str) -> List[UserEntity]:
    """Read users from `path`, falling back to the demo accounts."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            docs = json.load(f)
    except FileNotFoundError:
        logger.warning("Users file %s not found; using demo accounts", path)
        return demo_users()
    except (OSError, ValueError) as exc:
        logger.warning("Could not read users from %s: %s; using demo accounts", path, exc)
        return demo_users()

    users: List[UserEntity] = []
    for doc in docs if isinstance(docs, list) else []:
        try:
            users.append(
                {
                    "id": int(doc["id"]),
                    "name": str(doc["name"]),
                    "email": str(doc["email"]).strip().lower(),
                    "password_hash": str(doc["password_hash"]),
                    "role": str(doc.get("role") or "employee"),
                }
            )
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed user in %s: %r", path, exc)
    return users


# PUBLIC_INTERFACE
class UserDirectory:
    """Lookup and password check over a fixed set of users."""

    def __init__(self, users: List[UserEntity]) -> None:
        self._by_id: Dict[int, UserEntity] = {u["id"]: u for u in users}
        self._by_email: Dict[str, UserEntity] = {u["email"].lower(): u for u in users}

    def get(self, user_id: int) -> Optional[UserEntity]:
        return self._by_id.get(user_id)

    def authenticate(self, email: str, password: str) -> UserEntity:
        """
        Return the user whose email and password match.

        Raises:
            AuthenticationError for an unknown email or a wrong password. The
            message is the same in both cases.
        """
        user = self._by_email.get(email.strip().lower())
        if user is None:
            raise AuthenticationError()
        try:
            ok = check_password_hash(user["password_hash"], password)
        except ValueError:
            # placeholder or corrupted hash
            ok = False
        if not ok:
            raise AuthenticationError()
        return user
