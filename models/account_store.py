"""
AccountStore: the account persistence operations the auth and profile
endpoints rely on, on top of DBStorage.

Callers get User instances back; anything sent to a client goes through
UserOutSchema or User.to_dict(), both of which drop password_hash and
refresh_token.
"""
from __future__ import annotations

from sqlalchemy import or_

from models.db_storage import DBStorage
from models.user import User


class AccountStore:
    def __init__(self, storage: DBStorage):
        self.storage = storage

    def _query(self):
        return self.storage.get_session().query(User)

    def find_by_id(self, account_id: str) -> User | None:
        if not account_id:
            return None
        return self.storage.get(User, account_id)

    def find_by_identifier(self, username: str | None = None, email: str | None = None) -> User | None:
        """Match on username or email, whichever is given."""
        clauses = []
        if username:
            clauses.append(User.username == username.strip().lower())
        if email:
            clauses.append(User.email == email.strip().lower())
        if not clauses:
            return None
        return self._query().filter(or_(*clauses)).first()

    def exists(self, username: str | None = None, email: str | None = None,
               exclude_id: str | None = None) -> bool:
        clauses = []
        if username:
            clauses.append(User.username == username.strip().lower())
        if email:
            clauses.append(User.email == email.strip().lower())
        if not clauses:
            return False
        query = self._query().filter(or_(*clauses))
        if exclude_id:
            query = query.filter(User.id != exclude_id)
        return query.first() is not None

    def create(self, **fields) -> User:
        user = User(**fields)
        self.storage.new(user)
        self.storage.save()
        return user

    def update_fields(self, account_id: str, **fields) -> User | None:
        user = self.find_by_id(account_id)
        if user is None:
            return None
        for key, value in fields.items():
            setattr(user, key, value)
        user.save()
        return user
