from models import DatedMixin, SerializerMixin, db


class MemberType(db.Model, SerializerMixin):
    __tablename__ = "member_types"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)


class Member(db.Model, SerializerMixin):
    __tablename__ = "members"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    type_id = db.Column(db.Integer, db.ForeignKey("member_types.id"), nullable=True, index=True)

    name = db.Column(db.String(120), nullable=False)
    phone = db.Column(db.String(40), nullable=True)

    balance = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    transfers = db.relationship("MemberTransfer", back_populates="member", cascade="all, delete-orphan")

    def __repr__(self) -> str:
        return f"<Member {self.id} {self.name} balance={self.balance}>"


class MemberTransfer(db.Model, DatedMixin, SerializerMixin):
    """Money handed to a member: member balance up, parent balance down."""

    __tablename__ = "member_transfers"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    member_id = db.Column(db.Integer, db.ForeignKey("members.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(14, 2), nullable=False)
    note = db.Column(db.Text, nullable=True)

    member = db.relationship("Member", back_populates="transfers")
