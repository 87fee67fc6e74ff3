from flask import jsonify
from flask_login import login_required, current_user
from buildmart.blueprints.auth import auth_bp
from buildmart.blueprints.auth.forms import LoginForm, RegisterForm
from buildmart.services.auth_service import AuthService
from buildmart.utils.validators import validate_form


@auth_bp.route('/register', methods=['POST'])
def register():
    """买家注册，成功后直接返回 Token"""
    form = validate_form(RegisterForm())
    user = AuthService.register_user(
        name=form.name.data.strip(),
        email=form.email.data,
        password=form.password.data,
        phone=form.phone.data or None
    )
    return jsonify({
        'success': True,
        'token': AuthService.issue_token(user),
        'user': user.to_dict()
    }), 201


@auth_bp.route('/login', methods=['POST'])
def login():
    form = validate_form(LoginForm())
    principal, token = AuthService.login(form.email.data, form.password.data, form.account_type.data)
    return jsonify({
        'success': True,
        'token': token,
        'role': principal.role,
        'user': principal.to_dict()
    })


@auth_bp.route('/me')
@login_required
def me():
    """当前调用方信息"""
    return jsonify({'success': True, 'role': current_user.role, 'user': current_user.to_dict()})
