from flask import current_app, jsonify
from flask_login import login_user, logout_user, login_required, current_user
from . import bp
from .forms import LoginForm
from ...models.user import User
from ...roles import Role, dashboard_for


def _user_payload(user):
    role = Role.parse(user.role)
    return {
        "uid": user.uid,
        "email": user.email,
        "name": user.name,
        "role": role.value,
        "dashboard": dashboard_for(role),
    }


@bp.post("/login")
def login():
    form = LoginForm()
    if not form.validate_on_submit():
        return jsonify({"error": "invalid form", "fields": form.errors}), 400
    user = User.query.filter_by(email=form.email.data).first()
    if user and user.check_password(form.password.data):
        login_user(user)
        current_app.logger.info('login: %s (%s)', user.uid, user.role)
        return jsonify(_user_payload(user))
    return jsonify({"error": "invalid credentials"}), 401


@bp.post("/logout")
@login_required
def logout():
    logout_user()
    return jsonify({"status": "ok"})


@bp.get("/me")
@login_required
def me():
    return jsonify(_user_payload(current_user))
