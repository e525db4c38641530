from datetime import datetime

from models import DatedMixin, SerializerMixin, db


class TruckExpenseType:
    INCOME = "income"
    EXPENSE = "expense"

    ALL = {INCOME, EXPENSE}


class TruckExpenseCategory:
    FUEL = "fuel"
    GENERAL = "general"
    FOOD = "food"
    DRIVER_WAGE = "driver_wage"
    DRIVER_COMMISSION = "driver_commission"
    OTHER = "other"

    ALL = {FUEL, GENERAL, FOOD, DRIVER_WAGE, DRIVER_COMMISSION, OTHER}


class Truck(db.Model, SerializerMixin):
    __tablename__ = "trucks"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)

    number = db.Column(db.String(40), nullable=False)
    driver_name = db.Column(db.String(120), nullable=True)

    balance = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    # expected fuel cost per km
    fuel_formula = db.Column(db.Numeric(12, 4), nullable=False, default=0)
    driver_wage = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    # percent, e.g. 10 = 10%
    driver_commission_rate = db.Column(db.Numeric(6, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    expenses = db.relationship("TruckExpense", back_populates="truck", cascade="all, delete-orphan")
    trips = db.relationship("TruckTrip", back_populates="truck", cascade="all, delete-orphan")

    __table_args__ = (
        db.UniqueConstraint("company_id", "number", name="uq_truck_company_number"),
    )

    def __repr__(self) -> str:
        return f"<Truck {self.id} {self.number} balance={self.balance}>"


class TruckExpense(db.Model, DatedMixin, SerializerMixin):
    __tablename__ = "truck_expenses"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    truck_id = db.Column(db.Integer, db.ForeignKey("trucks.id"), nullable=False, index=True)

    type = db.Column(db.String(10), nullable=False, default=TruckExpenseType.EXPENSE)
    category = db.Column(db.String(30), nullable=False, default=TruckExpenseCategory.GENERAL)
    amount = db.Column(db.Numeric(14, 2), nullable=False)
    description = db.Column(db.Text, nullable=True)

    truck = db.relationship("Truck", back_populates="expenses")


class TruckTrip(db.Model, DatedMixin, SerializerMixin):
    """One round trip.

    ``net_result`` = fare minus every itemised trip cost; it is the only figure
    that reaches the truck and parent balances. ``expected_fuel`` is informational.
    """

    __tablename__ = "truck_trips"

    id = db.Column(db.Integer, primary_key=True)
    company_id = db.Column(db.Integer, db.ForeignKey("companies.id"), nullable=False, index=True)
    truck_id = db.Column(db.Integer, db.ForeignKey("trucks.id"), nullable=False, index=True)

    departure_location = db.Column(db.String(160), nullable=True)
    arrival_location = db.Column(db.String(160), nullable=True)

    old_odometer = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    new_odometer = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    km = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    trip_fare = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    fuel_expense = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    food_expense = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    spare_parts_expense = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    driver_wage_entry = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    commission_entry = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    expected_fuel = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    net_result = db.Column(db.Numeric(14, 2), nullable=False, default=0)

    truck = db.relationship("Truck", back_populates="trips")

    def __repr__(self) -> str:
        return f"<TruckTrip {self.id} truck={self.truck_id} net={self.net_result}>"
