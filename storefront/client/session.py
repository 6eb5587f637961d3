# storefront/client/session.py
"""Tab-scoped session storage and the login keys kept in it.

``token`` and ``cbid`` are stored JSON-quoted; ``userRole`` and ``userEmail``
are plain strings and only ever used as hints, the server stays authoritative.
"""
import json
from typing import Callable, Dict, List, Optional

TOKEN_KEY = "token"
USER_ID_KEY = "cbid"
ROLE_KEY = "userRole"
EMAIL_KEY = "userEmail"

STORAGE_EVENT = "storage"
SESSION_CHANGED = "sessionStorageChange"

Listener = Callable[[str], None]


class SessionStorage:
    """In-memory key/value store with change notifications.

    ``emit_storage_event`` stands for a change made by another tab,
    ``emit_session_changed`` for the in-app signal fired after login/logout.
    """

    def __init__(self, initial: Optional[Dict[str, str]] = None):
        self._data: Dict[str, str] = dict(initial or {})
        self._listeners: List[Listener] = []

    def get_item(self, key: str) -> Optional[str]:
        return self._data.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._data[key] = str(value)

    def remove_item(self, key: str) -> None:
        self._data.pop(key, None)

    def clear(self) -> None:
        self._data.clear()

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe():
            if listener in self._listeners:
                self._listeners.remove(listener)
        return unsubscribe

    def _emit(self, kind: str) -> None:
        for listener in list(self._listeners):
            listener(kind)

    def emit_storage_event(self) -> None:
        self._emit(STORAGE_EVENT)

    def emit_session_changed(self) -> None:
        self._emit(SESSION_CHANGED)


def read_json(storage: SessionStorage, key: str):
    raw = storage.get_item(key)
    if raw is None:
        return None
    try:
        return json.loads(raw)
    except ValueError:
        return None

def read_token(storage: SessionStorage) -> Optional[str]:
    token = read_json(storage, TOKEN_KEY)
    return token if isinstance(token, str) and token else None

def read_user_id(storage: SessionStorage) -> Optional[str]:
    # malformed or non-string ids mean "no user"
    uid = read_json(storage, USER_ID_KEY)
    if isinstance(uid, bool) or not isinstance(uid, (str, int)):
        return None
    uid = str(uid)
    return uid or None

def read_role_hint(storage: SessionStorage) -> Optional[str]:
    return storage.get_item(ROLE_KEY) or None

def read_email_hint(storage: SessionStorage) -> Optional[str]:
    return storage.get_item(EMAIL_KEY) or None

def save_login(storage: SessionStorage, token: str, user: dict) -> None:
    storage.set_item(TOKEN_KEY, json.dumps(token))
    storage.set_item(USER_ID_KEY, json.dumps(user["id"]))
    if user.get("role"):
        storage.set_item(ROLE_KEY, user["role"])
    if user.get("email"):
        storage.set_item(EMAIL_KEY, user["email"])
    storage.emit_session_changed()

def clear_login(storage: SessionStorage) -> None:
    for key in (TOKEN_KEY, USER_ID_KEY, ROLE_KEY, EMAIL_KEY):
        storage.remove_item(key)
    storage.emit_session_changed()
