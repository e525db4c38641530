from flask import jsonify, session
from flask_login import current_user, login_required, login_user, logout_user

from models import db
from models.user import User
from routes import auth_bp
from routes.guards import get_context_id, json_error, payload


def _memberships(user: User) -> list[dict]:
    return [
        {
            "company_id": m.company_id,
            "company_name": m.company.name,
            "is_parent": m.company.is_parent,
            "role": m.role,
            "permissions": sorted(m.permission_set()),
        }
        for m in user.active_memberships()
    ]


def _me(user: User) -> dict:
    return {
        "user": user.to_dict(),
        "memberships": _memberships(user),
        "company_id": get_context_id(),
    }


@auth_bp.post("/login")
def login():
    data = payload()
    username = User.normalize_username(data.get("username"))
    password = data.get("password") or ""

    user = db.session.query(User).filter(User.username == username, User.is_active.is_(True)).first()
    if not user or not user.check_password(password):
        return json_error("Invalid credentials", 401)

    login_user(user)

    # clear any previous context
    session.pop("company_id", None)

    # single company: select it straight away
    memberships = user.active_memberships()
    if len(memberships) == 1:
        session["company_id"] = memberships[0].company_id

    return jsonify(_me(user))


@auth_bp.post("/logout")
@login_required
def logout():
    logout_user()
    session.clear()
    return jsonify({"ok": True})


@auth_bp.get("/me")
@login_required
def me():
    return jsonify(_me(current_user))
