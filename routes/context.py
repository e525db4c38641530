from flask import jsonify, session
from flask_login import current_user, login_required

from routes import context_bp
from routes.guards import build_context, json_error, payload
from services.values import to_id


@context_bp.post("/context")
@login_required
def select_context():
    company_id = to_id(payload().get("company_id"), "company_id")

    company, ctx = build_context(current_user.id, company_id)
    if company is None:
        return json_error("Company is invalid or inactive", 400)
    if ctx is None:
        return json_error("You do not have permission for that company", 403)

    session["company_id"] = company.id
    return jsonify({
        "company": company.to_dict(),
        "is_parent": ctx.is_parent,
        "root_company_id": ctx.root_company_id,
        "permissions": sorted(ctx.permissions),
    })


@context_bp.delete("/context")
@login_required
def clear_context():
    session.pop("company_id", None)
    return jsonify({"ok": True})
