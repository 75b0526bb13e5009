"""
AUTHENTICATION ROUTES
=====================
"""

from flask import Blueprint
from flask_login import login_user, logout_user, login_required, current_user

from app.models import UserRole
from app.responses import send_success, get_json_body
from app.services.user_service import register_user, authenticate_user

auth_bp = Blueprint('auth', __name__)


@auth_bp.route('/register', methods=['POST'])
def register():
    data = get_json_body()
    # Self-registration always creates a plain member
    data['role'] = UserRole.MEMBER.value
    user = register_user(data)
    return send_success('Registration successful', user.to_dict(), 201)


@auth_bp.route('/login', methods=['POST'])
def login():
    data = get_json_body()
    user = authenticate_user(data.get('email'), data.get('password'))
    login_user(user, remember=bool(data.get('remember')))
    return send_success('Login successful', user.to_dict())


@auth_bp.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return send_success('Logged out successfully')


@auth_bp.route('/me')
@login_required
def me():
    return send_success('Current user', current_user.to_dict())
