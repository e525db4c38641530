from flask import Blueprint

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")
context_bp = Blueprint("context", __name__, url_prefix="/api")

# Handlers attach themselves to the blueprints on import
from routes import auth, context  # noqa: E402,F401
