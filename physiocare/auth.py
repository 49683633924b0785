from functools import wraps

from flask import g, request

from .errors import AuthenticationError, AuthorizationError
from .services.identity import get_identity
from .services.store import get_store


def bearer_token():
    header = request.headers.get("Authorization", "")
    if not header.startswith("Bearer "):
        return None
    token = header.split(" ", 1)[1].strip()
    return token or None


def require_auth(*roles):
    """Resolve the bearer token into ``g.principal`` before running the view.

    With ``roles`` given, principals holding any other role get a 403.
    """

    def decorator(view):
        @wraps(view)
        def wrapper(*args, **kwargs):
            token = bearer_token()
            if not token:
                raise AuthenticationError("Authentication token required.")

            principal = get_identity().resolve_token(get_store(), token)
            if roles and principal.role not in roles:
                raise AuthorizationError("You are not allowed to access this resource.")

            g.principal = principal
            return view(*args, **kwargs)

        return wrapper

    return decorator
