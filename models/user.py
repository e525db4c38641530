from datetime import datetime
from flask_login import UserMixin
from werkzeug.security import generate_password_hash, check_password_hash
from . import SerializerMixin, db, login_manager

class User(db.Model, UserMixin, SerializerMixin):
    """Login account. What it may touch comes from its company memberships."""

    __tablename__ = "users"
    __hidden__ = ("password_hash",)

    id = db.Column(db.Integer, primary_key=True)

    # stored lowercase, see normalize_username
    username = db.Column(db.String(80), nullable=False, unique=True, index=True)
    display_name = db.Column(db.String(120), nullable=False)

    password_hash = db.Column(db.String(255), nullable=False)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    memberships = db.relationship("CompanyUser", back_populates="user", cascade="all, delete-orphan")

    @staticmethod
    def normalize_username(raw) -> str:
        return (str(raw) if raw is not None else "").strip().lower()

    def set_password(self, password: str) -> None:
        self.password_hash = generate_password_hash(password)

    def check_password(self, password: str) -> bool:
        return check_password_hash(self.password_hash, password)

    def active_memberships(self) -> list:
        """Memberships on companies that are still active."""
        return [m for m in self.memberships if m.is_active and m.company.is_active]

    def __repr__(self) -> str:
        return f"<User {self.id} {self.username}>"

@login_manager.user_loader
def load_user(user_id: str):
    user = db.session.get(User, int(user_id))
    if user is None or not user.is_active:
        return None
    return user
