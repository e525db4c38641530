from datetime import datetime

from models import DatedMixin, SerializerMixin, db


class FundDirection:
    ADD = "add"
    WITHDRAW = "withdraw"

    ALL = {ADD, WITHDRAW}


class MachineType:
    COUNTER = "counter"
    WEIGHT = "weight"

    ALL = {COUNTER, WEIGHT}


class FactorySettings(db.Model, SerializerMixin):
    """One row per tenant holding the factory cash balance."""

    __tablename__ = "factory_settings"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, unique=True)

    balance = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    updated_at = db.Column(db.DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    def __repr__(self) -> str:
        return f"<FactorySettings company={self.company_id} balance={self.balance}>"


class Workshop(db.Model, SerializerMixin):
    __tablename__ = "workshops"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    expenses = db.relationship("WorkshopExpense", back_populates="workshop", cascade="all, delete-orphan")
    machines = db.relationship("Machine", back_populates="workshop", cascade="all, delete-orphan")


class WorkshopExpenseCategory(db.Model, SerializerMixin):
    __tablename__ = "workshop_expense_categories"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    name = db.Column(db.String(120), nullable=False)


class WorkshopExpense(db.Model, DatedMixin, SerializerMixin):
    __tablename__ = "workshop_expenses"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    workshop_id = db.Column(db.Integer, db.ForeignKey("workshops.id"), nullable=False, index=True)

    category = db.Column(db.String(120), nullable=True)
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    description = db.Column(db.Text, nullable=True)

    workshop = db.relationship("Workshop", back_populates="expenses")


class Machine(db.Model, SerializerMixin):
    __tablename__ = "machines"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    workshop_id = db.Column(db.Integer, db.ForeignKey("workshops.id"), nullable=False, index=True)

    name = db.Column(db.String(120), nullable=False)
    type = db.Column(db.String(20), nullable=False, default=MachineType.COUNTER)
    expected_daily_output = db.Column(db.Numeric(14, 3), nullable=False, default=0)
    unit = db.Column(db.String(20), nullable=True)

    workshop = db.relationship("Workshop", back_populates="machines")
    entries = db.relationship("MachineDailyEntry", back_populates="machine", cascade="all, delete-orphan")


class MachineDailyEntry(db.Model, DatedMixin, SerializerMixin):
    """Output a machine produced on one day.

    Counter machines store both readings and output is their difference;
    weight machines store the weighed output directly.
    """

    __tablename__ = "machine_daily_entries"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    machine_id = db.Column(db.Integer, db.ForeignKey("machines.id", ondelete="CASCADE"), nullable=False, index=True)
    worker_id = db.Column(db.Integer, db.ForeignKey("workers.id", ondelete="SET NULL"), nullable=True, index=True)

    output_value = db.Column(db.Numeric(14, 3), nullable=False, default=0)
    old_counter = db.Column(db.Numeric(14, 3), nullable=True)
    new_counter = db.Column(db.Numeric(14, 3), nullable=True)
    note = db.Column(db.String(255), nullable=True)

    machine = db.relationship("Machine", back_populates="entries")


class SparePartItem(db.Model, SerializerMixin):
    __tablename__ = "spare_part_items"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    name = db.Column(db.String(160), nullable=False)
    unit = db.Column(db.String(20), nullable=True)
    quantity = db.Column(db.Numeric(14, 3), nullable=False, default=0)

    purchases = db.relationship("SparePartPurchase", back_populates="item", cascade="all, delete-orphan")
    consumptions = db.relationship("SparePartConsumption", back_populates="item", cascade="all, delete-orphan")


class SparePartPurchase(db.Model, DatedMixin, SerializerMixin):
    __tablename__ = "spare_part_purchases"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("spare_part_items.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(14, 3), nullable=False)
    cost = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    item = db.relationship("SparePartItem", back_populates="purchases")


class SparePartConsumption(db.Model, DatedMixin, SerializerMixin):
    """Parts used up by a machine. Quantity only, no money moves."""

    __tablename__ = "spare_part_consumptions"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("spare_part_items.id"), nullable=False, index=True)
    machine_id = db.Column(db.Integer, db.ForeignKey("machines.id", ondelete="SET NULL"), nullable=True, index=True)

    quantity = db.Column(db.Numeric(14, 3), nullable=False)
    note = db.Column(db.String(255), nullable=True)

    item = db.relationship("SparePartItem", back_populates="consumptions")


class RawMaterial(db.Model, SerializerMixin):
    __tablename__ = "raw_materials"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    name = db.Column(db.String(160), nullable=False)
    unit = db.Column(db.String(20), nullable=True)
    quantity = db.Column(db.Numeric(14, 3), nullable=False, default=0)

    purchases = db.relationship("RawMaterialPurchase", back_populates="item", cascade="all, delete-orphan")


class RawMaterialPurchase(db.Model, DatedMixin, SerializerMixin):
    __tablename__ = "raw_material_purchases"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("raw_materials.id"), nullable=False, index=True)

    quantity = db.Column(db.Numeric(14, 3), nullable=False)
    cost = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    item = db.relationship("RawMaterial", back_populates="purchases")
