"""
Role-Based Access Control
Permission flags per role and the per-request session context
"""
from collections import namedtuple
from functools import wraps
from flask import abort, jsonify
from flask_login import current_user

ROLE_PERMISSIONS = {
    'admin': {
        # Donations
        'view_donations': True,
        'manage_donations': True,
        'submit_pledges': True,
        'withdraw_pledges': True,

        # Dues and finance
        'view_own_payments': True,
        'submit_payments': True,
        'view_all_payments': True,
        'review_payments': True,
        'view_financial_reports': True,
        'record_expenses': True,

        # Members
        'view_all_members': True,
        'edit_member_fees': True,
    },

    'member': {
        'view_donations': True,
        'submit_pledges': True,
        'view_own_payments': True,
        'submit_payments': True,

        # Administrative access
        'manage_donations': False,
        'withdraw_pledges': False,
        'view_all_payments': False,
        'review_payments': False,
        'view_financial_reports': False,
        'record_expenses': False,
        'view_all_members': False,
        'edit_member_fees': False,
    },
}

SessionContext = namedtuple('SessionContext', ['member_id', 'role'])


def current_context(user=None):
    """Session context for the logged-in member, passed explicitly into components"""
    if not user:
        user = current_user
    if not user or not user.is_authenticated:
        return None
    return SessionContext(member_id=user.id, role=user.role)


def has_permission(permission_name, user=None):
    """Check if user has a specific permission"""
    if not user:
        user = current_user

    if not user or not user.is_authenticated:
        return False

    return ROLE_PERMISSIONS.get(user.role, {}).get(permission_name, False)


def has_any_permission(*permission_names, user=None):
    """Check if user has any of the specified permissions"""
    return any(has_permission(perm, user) for perm in permission_names)


def permission_required(*permissions):
    """Decorator to require any of the given permissions for route access"""
    def decorator(f):
        @wraps(f)
        def decorated_function(*args, **kwargs):
            if not current_user.is_authenticated:
                return jsonify({'success': False, 'message': 'Please log in to access this page.'}), 401

            if not has_any_permission(*permissions):
                abort(403)

            return f(*args, **kwargs)
        return decorated_function
    return decorator
