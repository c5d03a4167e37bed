"""
Authentication
Flask-Login session for members, email + password
"""
from flask import Blueprint, request, jsonify
from flask_login import LoginManager, login_user, logout_user, login_required, current_user
from models import db, Member

# Create authentication blueprint
auth_bp = Blueprint('auth', __name__, url_prefix='/auth')

# Initialize Flask-Login
login_manager = LoginManager()
login_manager.login_message = 'Please log in to access this page.'


@login_manager.user_loader
def load_user(user_id):
    """Load member by ID for Flask-Login"""
    return db.session.get(Member, int(user_id))


@login_manager.unauthorized_handler
def unauthorized():
    return jsonify({'success': False, 'message': login_manager.login_message}), 401


def init_auth(app):
    """Initialize authentication system with Flask app"""
    login_manager.init_app(app)
    app.register_blueprint(auth_bp)


@auth_bp.route('/login', methods=['POST'])
def login():
    """Member login"""
    data = request.get_json(silent=True) or request.form
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''

    if not email or not password:
        return jsonify({'success': False, 'message': 'Please enter both email and password.'}), 400

    member = Member.query.filter_by(email=email).first()
    if not member or not member.check_password(password):
        return jsonify({'success': False, 'message': 'Incorrect email or password.'}), 401

    if not member.active:
        return jsonify({'success': False, 'message': 'Your account is inactive. Please contact the administrator.'}), 403

    login_user(member, remember=True)
    return jsonify({'success': True, 'member': member.to_dict()})


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    """Member logout"""
    logout_user()
    return jsonify({'success': True})


@auth_bp.route('/me')
@login_required
def me():
    return jsonify({'success': True, 'member': current_user.to_dict()})
