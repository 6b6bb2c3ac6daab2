from functools import wraps
from flask import request
from db import get_db
from errors import StoreError


def current_user_id():
    """
    Reads the caller's identity from the X-User-ID header.

    Authentication happens upstream; this service trusts the supplied id.

    Returns:
        The positive integer user id, or None when absent or malformed.
    """
    raw = request.headers.get("X-User-ID", "").strip()
    if not raw.isdigit() or int(raw) <= 0:
        return None
    return int(raw)


def require_user(f):
    """
    Decorator that ensures a valid X-User-ID header is present.

    Passes the resolved 'user_id' and an open 'db' session to the wrapped
    function and closes the session afterwards.

    Args:
        f: The route handler function to be protected.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        user_id = current_user_id()
        if user_id is None:
            raise StoreError.unauthorized()
        db = next(get_db())
        try:
            return f(*args, user_id=user_id, db=db, **kwargs)
        finally:
            db.close()
    return decorated


def with_db(f):
    """
    Decorator injecting a request-scoped 'db' session for public endpoints.
    """
    @wraps(f)
    def decorated(*args, **kwargs):
        db = next(get_db())
        try:
            return f(*args, db=db, **kwargs)
        finally:
            db.close()
    return decorated
