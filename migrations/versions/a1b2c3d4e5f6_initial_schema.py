"""initial schema: companies, ledger areas, attendance, cash box

Revision ID: a1b2c3d4e5f6
Revises:
Create Date: 2026-10-19

"""

from alembic import op
import sqlalchemy as sa


revision = "a1b2c3d4e5f6"
down_revision = None
branch_labels = None
depends_on = None


def _money(name, nullable=False, **kw):
    return sa.Column(name, sa.Numeric(precision=14, scale=2), nullable=nullable, **kw)


def _tenant():
    return sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False)


def _dated():
    return [
        sa.Column("entry_date", sa.Date(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    ]


def _indexes(table, *cols):
    for col in cols:
        op.create_index(f"ix_{table}_{col}", table, [col], unique=False)


def upgrade():
    # ---- Companies / users ----
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(length=120), nullable=False, unique=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("is_parent", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("parent_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=True),
        _money("balance", server_default="0"),
        _money("debt_to_parent", server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    _indexes("companies", "parent_id")

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("username", sa.String(length=80), nullable=False),
        sa.Column("display_name", sa.String(length=120), nullable=False),
        sa.Column("password_hash", sa.String(length=255), nullable=False),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    op.create_index("ix_users_username", "users", ["username"], unique=True)

    op.create_table(
        "company_users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("role", sa.String(length=20), nullable=False),
        sa.Column("permissions", sa.String(length=255), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("user_id", "company_id", name="uq_user_company"),
    )

    op.create_table(
        "transfers",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("from_company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        sa.Column("to_company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False),
        _money("amount"),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="pending"),
        sa.Column("decided_at", sa.DateTime(), nullable=True),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id"), nullable=True),
        *_dated(),
    )
    _indexes("transfers", "company_id", "from_company_id", "to_company_id", "status", "entry_date", "created_at")

    # ---- Expenses / members ----
    op.create_table(
        "expense_categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.UniqueConstraint("company_id", "name", name="uq_expense_category_company_name"),
    )
    _indexes("expense_categories", "company_id")

    op.create_table(
        "expenses",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("category_id", sa.Integer(), sa.ForeignKey("expense_categories.id"), nullable=True),
        sa.Column("title", sa.String(length=160), nullable=False),
        _money("amount"),
        sa.Column("description", sa.Text(), nullable=True),
        *_dated(),
    )
    _indexes("expenses", "company_id", "category_id", "entry_date", "created_at")

    op.create_table(
        "member_types",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("name", sa.String(length=120), nullable=False),
    )
    _indexes("member_types", "company_id")

    op.create_table(
        "members",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("type_id", sa.Integer(), sa.ForeignKey("member_types.id"), nullable=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=True),
        _money("balance", server_default="0"),
    )
    _indexes("members", "company_id", "type_id")

    op.create_table(
        "member_transfers",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("member_id", sa.Integer(), sa.ForeignKey("members.id"), nullable=False),
        _money("amount"),
        sa.Column("note", sa.Text(), nullable=True),
        *_dated(),
    )
    _indexes("member_transfers", "company_id", "member_id", "entry_date", "created_at")

    # ---- Trucks ----
    op.create_table(
        "trucks",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("number", sa.String(length=40), nullable=False),
        sa.Column("driver_name", sa.String(length=120), nullable=True),
        _money("balance", server_default="0"),
        sa.Column("fuel_formula", sa.Numeric(precision=12, scale=4), nullable=False, server_default="0"),
        _money("driver_wage", server_default="0"),
        sa.Column("driver_commission_rate", sa.Numeric(precision=6, scale=2), nullable=False, server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("company_id", "number", name="uq_truck_company_number"),
    )
    _indexes("trucks", "company_id")

    op.create_table(
        "truck_expenses",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("truck_id", sa.Integer(), sa.ForeignKey("trucks.id"), nullable=False),
        sa.Column("type", sa.String(length=10), nullable=False),
        sa.Column("category", sa.String(length=30), nullable=False),
        _money("amount"),
        sa.Column("description", sa.Text(), nullable=True),
        *_dated(),
    )
    _indexes("truck_expenses", "company_id", "truck_id", "entry_date", "created_at")

    op.create_table(
        "truck_trips",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("truck_id", sa.Integer(), sa.ForeignKey("trucks.id"), nullable=False),
        sa.Column("departure_location", sa.String(length=160), nullable=True),
        sa.Column("arrival_location", sa.String(length=160), nullable=True),
        _money("old_odometer", server_default="0"),
        _money("new_odometer", server_default="0"),
        _money("km", server_default="0"),
        _money("trip_fare", server_default="0"),
        _money("fuel_expense", server_default="0"),
        _money("food_expense", server_default="0"),
        _money("spare_parts_expense", server_default="0"),
        _money("driver_wage_entry", server_default="0"),
        _money("commission_entry", server_default="0"),
        _money("expected_fuel", server_default="0"),
        _money("net_result", server_default="0"),
        *_dated(),
    )
    _indexes("truck_trips", "company_id", "truck_id", "entry_date", "created_at")

    # ---- External funds / debts ----
    op.create_table(
        "external_funds",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("person_name", sa.String(length=120), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=True),
        sa.Column("type", sa.String(length=10), nullable=False),
        _money("amount"),
        sa.Column("description", sa.Text(), nullable=True),
        *_dated(),
    )
    _indexes("external_funds", "company_id", "entry_date", "created_at")

    op.create_table(
        "external_debts",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("person_name", sa.String(length=120), nullable=False),
        sa.Column("phone", sa.String(length=40), nullable=True),
        _money("total_amount"),
        _money("paid_amount", server_default="0"),
        sa.Column("note", sa.Text(), nullable=True),
        *_dated(),
    )
    _indexes("external_debts", "company_id", "entry_date", "created_at")

    op.create_table(
        "debt_payments",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("debt_id", sa.Integer(), sa.ForeignKey("external_debts.id"), nullable=False),
        _money("amount"),
        sa.Column("note", sa.Text(), nullable=True),
        *_dated(),
    )
    _indexes("debt_payments", "company_id", "debt_id", "entry_date", "created_at")

    # ---- Projects ----
    op.create_table(
        "projects",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("name", sa.String(length=160), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        _money("balance", server_default="0"),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    _indexes("projects", "company_id")

    op.create_table(
        "project_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("project_id", sa.Integer(), sa.ForeignKey("projects.id"), nullable=False),
        sa.Column("type", sa.String(length=10), nullable=False),
        _money("amount"),
        sa.Column("description", sa.Text(), nullable=True),
        *_dated(),
    )
    _indexes("project_transactions", "company_id", "project_id", "entry_date", "created_at")

    # ---- Factory ----
    op.create_table(
        "factory_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id"), nullable=False, unique=True),
        _money("balance", server_default="0"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
    )

    op.create_table(
        "workshops",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    _indexes("workshops", "company_id")

    op.create_table(
        "workshop_expense_categories",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("name", sa.String(length=120), nullable=False),
    )
    _indexes("workshop_expense_categories", "company_id")

    op.create_table(
        "workshop_expenses",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("workshop_id", sa.Integer(), sa.ForeignKey("workshops.id"), nullable=False),
        sa.Column("category", sa.String(length=120), nullable=True),
        _money("amount"),
        sa.Column("description", sa.Text(), nullable=True),
        *_dated(),
    )
    _indexes("workshop_expenses", "company_id", "workshop_id", "entry_date", "created_at")

    op.create_table(
        "machines",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("workshop_id", sa.Integer(), sa.ForeignKey("workshops.id"), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        sa.Column("expected_daily_output", sa.Numeric(precision=14, scale=3), nullable=False, server_default="0"),
        sa.Column("unit", sa.String(length=20), nullable=True),
    )
    _indexes("machines", "company_id", "workshop_id")

    for items, purchases in (("spare_part_items", "spare_part_purchases"), ("raw_materials", "raw_material_purchases")):
        op.create_table(
            items,
            sa.Column("id", sa.Integer(), primary_key=True),
            _tenant(),
            sa.Column("name", sa.String(length=160), nullable=False),
            sa.Column("unit", sa.String(length=20), nullable=True),
            sa.Column("quantity", sa.Numeric(precision=14, scale=3), nullable=False, server_default="0"),
        )
        _indexes(items, "company_id")

        op.create_table(
            purchases,
            sa.Column("id", sa.Integer(), primary_key=True),
            _tenant(),
            sa.Column("item_id", sa.Integer(), sa.ForeignKey(f"{items}.id"), nullable=False),
            sa.Column("quantity", sa.Numeric(precision=14, scale=3), nullable=False),
            _money("cost", server_default="0"),
            *_dated(),
        )
        _indexes(purchases, "company_id", "item_id", "entry_date", "created_at")

    op.create_table(
        "spare_part_consumptions",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("item_id", sa.Integer(), sa.ForeignKey("spare_part_items.id"), nullable=False),
        sa.Column("machine_id", sa.Integer(), sa.ForeignKey("machines.id", ondelete="SET NULL"), nullable=True),
        sa.Column("quantity", sa.Numeric(precision=14, scale=3), nullable=False),
        sa.Column("note", sa.String(length=255), nullable=True),
        *_dated(),
    )
    _indexes("spare_part_consumptions", "company_id", "item_id", "machine_id", "entry_date", "created_at")

    # ---- Workers / attendance ----
    op.create_table(
        "work_shifts",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("name", sa.String(length=80), nullable=False),
        sa.Column("start_time", sa.String(length=5), nullable=False),
        sa.Column("end_time", sa.String(length=5), nullable=False),
        sa.Column("late_tolerance_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("early_leave_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("overtime_after_minutes", sa.Integer(), nullable=False, server_default="0"),
    )
    _indexes("work_shifts", "company_id")

    op.create_table(
        "workers",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("shift_id", sa.Integer(), sa.ForeignKey("work_shifts.id", ondelete="SET NULL"), nullable=True),
        sa.Column("name", sa.String(length=120), nullable=False),
        sa.Column("worker_number", sa.String(length=40), nullable=True),
        sa.Column("phone", sa.String(length=40), nullable=True),
        _money("wage", server_default="0"),
        _money("bonus", nullable=True),
        _money("overtime_rate", server_default="0"),
        _money("balance", server_default="0"),
        sa.Column("contract_end_date", sa.Date(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("company_id", "worker_number", name="uq_worker_company_number"),
    )
    _indexes("workers", "company_id", "shift_id")

    op.create_table(
        "worker_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("worker_id", sa.Integer(), sa.ForeignKey("workers.id"), nullable=False),
        sa.Column("type", sa.String(length=20), nullable=False),
        _money("amount"),
        sa.Column("note", sa.Text(), nullable=True),
        *_dated(),
    )
    _indexes("worker_transactions", "company_id", "worker_id", "entry_date", "created_at")

    op.create_table(
        "attendance_scans",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("worker_id", sa.Integer(), sa.ForeignKey("workers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("type", sa.String(length=5), nullable=False),
        sa.Column("scan_time", sa.DateTime(), nullable=False),
    )
    _indexes("attendance_scans", "company_id")
    op.create_index("ix_attendance_scans_worker_time", "attendance_scans", ["worker_id", "scan_time"], unique=False)

    op.create_table(
        "attendance_days",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("worker_id", sa.Integer(), sa.ForeignKey("workers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("check_in", sa.String(length=5), nullable=True),
        sa.Column("check_out", sa.String(length=5), nullable=True),
        sa.Column("status", sa.String(length=10), nullable=False, server_default="present"),
        sa.Column("late_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("early_leave_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("overtime_minutes", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("worker_id", "date", name="uq_attendance_worker_date"),
    )
    _indexes("attendance_days", "company_id", "worker_id", "date")

    op.create_table(
        "holidays",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("name", sa.String(length=120), nullable=True),
        sa.UniqueConstraint("company_id", "date", name="uq_holiday_company_date"),
    )
    _indexes("holidays", "company_id")

    op.create_table(
        "worker_warnings",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("worker_id", sa.Integer(), sa.ForeignKey("workers.id", ondelete="CASCADE"), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
    )
    _indexes("worker_warnings", "company_id", "worker_id", "date")

    # ---- Machine output (needs machines and workers) ----
    op.create_table(
        "machine_daily_entries",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("machine_id", sa.Integer(), sa.ForeignKey("machines.id", ondelete="CASCADE"), nullable=False),
        sa.Column("worker_id", sa.Integer(), sa.ForeignKey("workers.id", ondelete="SET NULL"), nullable=True),
        sa.Column("output_value", sa.Numeric(precision=14, scale=3), nullable=False, server_default="0"),
        sa.Column("old_counter", sa.Numeric(precision=14, scale=3), nullable=True),
        sa.Column("new_counter", sa.Numeric(precision=14, scale=3), nullable=True),
        sa.Column("note", sa.String(length=255), nullable=True),
        *_dated(),
    )
    _indexes("machine_daily_entries", "company_id", "machine_id", "worker_id", "entry_date", "created_at")

    # ---- Cash box / idempotency ----
    op.create_table(
        "cashbox_transactions",
        sa.Column("id", sa.Integer(), primary_key=True),
        _tenant(),
        sa.Column("type", sa.String(length=10), nullable=False),
        sa.Column("category", sa.String(length=20), nullable=False, server_default="other"),
        _money("amount"),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("exchange_ref", sa.String(length=36), nullable=True),
        sa.Column("exchange_rate", sa.Numeric(precision=14, scale=6), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        *_dated(),
    )
    _indexes("cashbox_transactions", "company_id", "exchange_ref", "entry_date", "created_at")

    op.create_table(
        "idempotency_keys",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), nullable=False),
        sa.Column("key", sa.String(length=120), nullable=False),
        sa.Column("method", sa.String(length=10), nullable=False),
        sa.Column("path", sa.String(length=255), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False, server_default="PENDING"),
        sa.Column("status_code", sa.Integer(), nullable=True),
        sa.Column("response_json", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.UniqueConstraint("company_id", "key", name="uq_idempotency_company_key"),
    )
    _indexes("idempotency_keys", "company_id")


def downgrade():
    for table in (
        "idempotency_keys",
        "cashbox_transactions",
        "machine_daily_entries",
        "worker_warnings",
        "holidays",
        "attendance_days",
        "attendance_scans",
        "worker_transactions",
        "workers",
        "work_shifts",
        "spare_part_consumptions",
        "raw_material_purchases",
        "raw_materials",
        "spare_part_purchases",
        "spare_part_items",
        "machines",
        "workshop_expenses",
        "workshop_expense_categories",
        "workshops",
        "factory_settings",
        "project_transactions",
        "projects",
        "debt_payments",
        "external_debts",
        "external_funds",
        "truck_trips",
        "truck_expenses",
        "trucks",
        "member_transfers",
        "members",
        "member_types",
        "expenses",
        "expense_categories",
        "transfers",
        "company_users",
        "users",
        "companies",
    ):
        op.drop_table(table)
