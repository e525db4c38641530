import logging
import os
from datetime import date, datetime
from decimal import Decimal
from logging.handlers import RotatingFileHandler

from flask import Flask, jsonify, request
from flask.json.provider import DefaultJSONProvider
from flask_migrate import Migrate
from werkzeug.exceptions import HTTPException

from config import Config
from models import db, login_manager
from services.errors import ServiceError


migrate = Migrate()


class JSONProvider(DefaultJSONProvider):
    """Money as plain numbers, dates as ISO strings."""

    @staticmethod
    def default(o):
        if isinstance(o, Decimal):
            return float(o)
        if isinstance(o, (datetime, date)):
            return o.isoformat()
        return DefaultJSONProvider.default(o)


def create_app(config_object=Config) -> Flask:
    app = Flask(__name__)
    app.config.from_object(config_object)
    app.json = JSONProvider(app)

    # -------------------------
    # Extensions
    # -------------------------
    db.init_app(app)
    migrate.init_app(app, db)

    login_manager.init_app(app)

    @login_manager.unauthorized_handler
    def _unauthorized():
        return jsonify({"message": "Login required"}), 401

    # -------------------------
    # Models (Alembic needs them imported)
    # -------------------------
    from models.company import Company  # noqa: F401
    from models.user import User  # noqa: F401
    from models.membership import CompanyUser  # noqa: F401
    from models.transfer import Transfer  # noqa: F401
    from models.expense import Expense, ExpenseCategory  # noqa: F401
    from models.member import Member, MemberTransfer, MemberType  # noqa: F401
    from models.truck import Truck, TruckExpense, TruckTrip  # noqa: F401
    from models.external import DebtPayment, ExternalDebt, ExternalFund  # noqa: F401
    from models.project import Project, ProjectTransaction  # noqa: F401
    from models.factory import FactorySettings, Machine, Workshop  # noqa: F401
    from models.attendance import AttendanceDay, AttendanceScan, Holiday, WorkShift, WorkerWarning  # noqa: F401
    from models.worker import Worker, WorkerTransaction  # noqa: F401
    from models.cashbox import CashboxTransaction  # noqa: F401
    from models.idempotency import IdempotencyKey  # noqa: F401

    # -------------------------
    # Blueprints
    # -------------------------
    from routes import auth_bp, context_bp
    from routes.companies import companies_bp
    from routes.expenses import expenses_bp
    from routes.members import members_bp
    from routes.trucks import trucks_bp
    from routes.external import external_bp
    from routes.projects import projects_bp
    from routes.factory import factory_bp
    from routes.workers import workers_bp
    from routes.attendance import attendance_bp
    from routes.cashbox import cashbox_bp

    blueprints = [
        auth_bp,
        context_bp,

        # Companies and transfers
        companies_bp,

        # Ledger areas
        expenses_bp,
        members_bp,
        trucks_bp,
        external_bp,
        projects_bp,
        factory_bp,

        # Workers / attendance
        workers_bp,
        attendance_bp,

        cashbox_bp,
    ]

    for bp in blueprints:
        app.register_blueprint(bp)

    # -------------------------
    # Logging + global error handling
    # -------------------------
    log_dir = app.config.get("LOG_DIR") or os.path.join(os.path.dirname(__file__), "logs")
    os.makedirs(log_dir, exist_ok=True)
    level = getattr(logging, str(app.config.get("LOG_LEVEL", "INFO")).upper(), logging.INFO)

    file_handler = RotatingFileHandler(
        os.path.join(log_dir, "app.log"),
        maxBytes=2_000_000,
        backupCount=5,
        encoding="utf-8",
    )
    file_handler.setLevel(level)
    file_handler.setFormatter(logging.Formatter(
        "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    ))

    if not any(isinstance(h, RotatingFileHandler) for h in app.logger.handlers):
        app.logger.addHandler(file_handler)
    app.logger.setLevel(level)

    # services log through their module loggers
    services_logger = logging.getLogger("services")
    if not any(isinstance(h, RotatingFileHandler) for h in services_logger.handlers):
        services_logger.addHandler(file_handler)
    services_logger.setLevel(level)

    @app.errorhandler(ServiceError)
    def _handle_service_error(e: ServiceError):
        db.session.rollback()
        app.logger.info("%s %s -> %s: %s", request.method, request.path, e.status_code, e.message)
        return jsonify({"message": e.message}), e.status_code

    @app.errorhandler(HTTPException)
    def _handle_http(e: HTTPException):
        return jsonify({"message": e.description or e.name}), e.code

    @app.errorhandler(500)
    def _handle_500(e):
        db.session.rollback()
        app.logger.exception("Unhandled error 500: %s %s", request.method, request.path)
        return jsonify({"message": "Internal error. The problem was logged."}), 500

    return app


app = create_app()


if __name__ == "__main__":
    # Debug controlled by config / environment
    app.run(debug=app.config.get("DEBUG", False))
