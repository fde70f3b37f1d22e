"""Custom decorators for route protection"""
from functools import wraps
from flask import flash, redirect, request, url_for
from flask_babel import gettext as _
from flask_security import current_user


def role_required(*roles):
    """
    Allow the view only for signed-in users holding one of ``roles``.

    Anonymous users go to the login page; signed-in users with another role
    are sent back to their own dashboard.
    """
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return redirect(url_for('security.login', next=request.path))
            if not any(current_user.has_role(role) for role in roles):
                flash(_('You do not have access to that page.'), 'error')
                return redirect(url_for('main.index'))
            return f(*args, **kwargs)
        return decorated_function
    return decorator
