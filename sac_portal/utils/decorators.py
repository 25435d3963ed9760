from functools import wraps
from flask import abort
from flask_login import current_user

from ..roles import Role


def role_required(check):
    """Gate a view on a capability check taking the user's Role."""
    def decorator(view):
        @wraps(view)
        def wrapped(*args, **kwargs):
            if not current_user.is_authenticated:
                abort(401)
            try:
                role = Role.parse(getattr(current_user, "role", None))
            except ValueError:
                abort(403)
            if not check(role):
                abort(403)
            return view(*args, **kwargs)
        return wrapped
    return decorator
