"""
Community Portal
Main Flask application: membership, donation pledges and dues
"""
import logging
import os

from flask import Blueprint, jsonify
from flask_login import login_required, current_user

from database import create_app as create_database_app
from auth import init_auth
from donations import donations_bp
from dues import Period
from errors import PortalError
from finance import finance_bp
from members import members_bp
from payments import get_reconciler, payments_bp
from rbac import current_context, has_permission
from uploads import uploads_bp

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

# Main blueprint for core functionality
main_bp = Blueprint('main', __name__)


@main_bp.route('/')
@login_required
def dashboard():
    """Current month at a glance; administrators also see the house balance"""
    period = Period.current()
    reconciler = get_reconciler()
    statuses = reconciler.member_statuses_for(period)

    data = {'success': True, 'month': period.month, 'year': period.year}

    if has_permission('view_all_payments'):
        totals = reconciler.period_totals_for(period)
        data.update({
            'income': totals.income,
            'expenses': totals.expenses,
            'balance': totals.balance,
            'up_to_date': sum(1 for s in statuses if s.status == 'up_to_date'),
            'defaulting': sum(1 for s in statuses if s.status == 'defaulting'),
            'exempt': sum(1 for s in statuses if s.status == 'exempt'),
            'pending_approval': len(reconciler.list_payments(status='pending_approval')),
        })
    else:
        context = current_context()
        own = [s._asdict() for s in statuses if s.member_id == context.member_id]
        data['status'] = own[0] if own else None

    data['member'] = current_user.to_dict()
    return jsonify(data)


def register_error_handlers(app):
    @app.errorhandler(PortalError)
    def handle_portal_error(error):
        return jsonify(error.to_dict()), error.status_code

    @app.errorhandler(403)
    def forbidden(error):
        return jsonify({'success': False, 'message': 'You do not have permission to access this page.'}), 403

    @app.errorhandler(404)
    def not_found(error):
        return jsonify({'success': False, 'message': 'Not found.'}), 404


def create_app(config_mode=None):
    """Create and configure Flask application"""
    config_mode = config_mode or os.environ.get('PORTAL_ENV', 'development')
    app = create_database_app(config_mode)

    # Initialize authentication
    init_auth(app)

    app.register_blueprint(main_bp)
    app.register_blueprint(donations_bp)
    app.register_blueprint(payments_bp)
    app.register_blueprint(finance_bp)
    app.register_blueprint(members_bp)
    app.register_blueprint(uploads_bp)

    register_error_handlers(app)

    logger.info(f"Community Portal created ({config_mode})")
    return app
