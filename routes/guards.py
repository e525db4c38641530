from datetime import timedelta
from functools import wraps

from flask import current_app, g, jsonify, make_response, request, session
from flask_login import current_user

from models import db
from models.company import Company
from models.membership import CompanyUser, Role
from services import idempotency
from services.errors import ValidationError
from services.tenant import TenantContext


def json_error(message: str, status: int):
    return jsonify({"message": message}), status


def get_context_id():
    company_id = session.get("company_id")
    if company_id is None:
        return None
    try:
        return int(company_id)
    except (TypeError, ValueError):
        return None


def membership_for(user_id: int, company: Company):
    """Active membership that lets ``user_id`` act for ``company``.

    A direct membership wins. OWNER/ADMIN of the parent company may also act
    for any of its child companies.
    """
    memberships = (
        db.session.query(CompanyUser)
        .filter(CompanyUser.user_id == user_id, CompanyUser.is_active.is_(True))
        .all()
    )

    for m in memberships:
        if m.company_id == company.id:
            return m

    if not company.is_parent:
        for m in memberships:
            if m.company_id == company.parent_id and m.role in Role.FULL_ACCESS:
                return m

    return None


def build_context(user_id: int, company_id: int):
    company = db.session.get(Company, company_id)
    if company is None or not company.is_active:
        return None, None
    m = membership_for(user_id, company)
    if m is None:
        return company, None
    ctx = TenantContext(
        company_id=company.id,
        root_company_id=company.root_id,
        is_parent=bool(company.is_parent),
        permissions=m.permission_set(),
        user_id=user_id,
    )
    return company, ctx


def tenant_context() -> TenantContext:
    """Context built by ``require_context`` for the current request."""
    return g.tenant


def require_context():
    """Needs a selected company the logged in user may act for."""

    def decorator(fn):
        @wraps(fn)
        def wrapper(*args, **kwargs):
            if not current_user.is_authenticated:
                return json_error("Login required", 401)

            company_id = get_context_id()
            if not company_id:
                return json_error("Select a company to continue", 400)

            company, ctx = build_context(current_user.id, company_id)
            if company is None:
                session.pop("company_id", None)
                return json_error("Company is invalid or inactive. Select a company again", 400)
            if ctx is None:
                return json_error("You do not have access to this company", 403)

            g.tenant = ctx
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def require_roles(*allowed_roles):
    """Membership role check on top of ``require_context``."""

    def decorator(fn):
        @wraps(fn)
        @require_context()
        def wrapper(*args, **kwargs):
            company = db.session.get(Company, g.tenant.company_id)
            m = membership_for(current_user.id, company)
            if m is None or m.role not in allowed_roles:
                return json_error("You do not have permission for this section", 403)
            return fn(*args, **kwargs)

        return wrapper

    return decorator


def payload() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def idempotent(fn):
    """Honour an optional ``Idempotency-Key`` header on a mutating view.

    Must sit under ``require_context`` so the key is scoped to the tenant.
    """

    @wraps(fn)
    def wrapper(*args, **kwargs):
        key = request.headers.get("Idempotency-Key")
        if not key:
            return fn(*args, **kwargs)

        ctx = tenant_context()
        timeout = current_app.config.get("IDEMPOTENCY_PENDING_TIMEOUT_SECONDS", 60)
        row, replay = idempotency.reserve(
            db.session,
            ctx.root_company_id,
            key,
            method=request.method,
            path=request.path,
            pending_timeout=timedelta(seconds=timeout),
        )
        if replay:
            resp = current_app.response_class(row.response_json, status=row.status_code, mimetype="application/json")
            resp.headers["Idempotent-Replayed"] = "true"
            return resp

        try:
            resp = make_response(fn(*args, **kwargs))
        except Exception:
            idempotency.release(db.session, row)
            raise

        if resp.status_code >= 400:
            idempotency.release(db.session, row)
            return resp

        idempotency.complete(db.session, row, status_code=resp.status_code, body=resp.get_data(as_text=True))
        return resp

    return wrapper


def dated_payload() -> dict:
    """JSON body with ``date`` (as clients send it) mapped to ``entry_date``."""
    data = payload()
    if "date" in data and "entry_date" not in data:
        data = {**data, "entry_date": data["date"]}
    return data
