"""Initial schema

Revision ID: 001
Revises:
Create Date: 2026-10-19 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    ]


def _audit():
    return [
        sa.Column("created_by", sa.Integer(), nullable=True),
        sa.Column("updated_by", sa.Integer(), nullable=True),
    ]


def upgrade() -> None:
    # Provision item catalog
    op.create_table(
        "lttp_items",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("category", sa.String(50), nullable=False, index=True),
        sa.Column("unit", sa.String(20), nullable=False),
        sa.Column("unit_price", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("calories", sa.Numeric(8, 2), nullable=False, server_default="0"),
        sa.Column("protein", sa.Numeric(8, 2), nullable=False, server_default="0"),
        sa.Column("fat", sa.Numeric(8, 2), nullable=False, server_default="0"),
        sa.Column("carbs", sa.Numeric(8, 2), nullable=False, server_default="0"),
        sa.Column("fiber", sa.Numeric(8, 2), nullable=False, server_default="0"),
        sa.Column("storage_temperature", sa.String(20), nullable=True),
        sa.Column("storage_humidity", sa.String(20), nullable=True),
        sa.Column("shelf_life_days", sa.Integer(), nullable=True),
        sa.Column("supplier_name", sa.String(200), nullable=True),
        sa.Column("supplier_contact", sa.String(200), nullable=True),
        sa.Column("supplier_address", sa.String(500), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        sa.Column("last_updated_price", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        *_timestamps(),
        *_audit(),
    )
    op.create_index("ix_lttp_items_name_category", "lttp_items", ["name", "category"])

    # Recipient units
    op.create_table(
        "units",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("code", sa.String(20), nullable=False, unique=True, index=True),
        sa.Column("personnel", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("commander", sa.String(200), nullable=True),
        sa.Column("parent_unit_id", sa.Integer(), sa.ForeignKey("units.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true(), index=True),
        *_timestamps(),
    )

    # Daily inventory ledger
    op.create_table(
        "lttp_inventory",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False, index=True),
        sa.Column("lttp_item_id", sa.Integer(), sa.ForeignKey("lttp_items.id", ondelete="RESTRICT"), nullable=False, index=True),
        sa.Column("previous_quantity", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("previous_amount", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.Column("previous_expiry_date", sa.Date(), nullable=True),
        sa.Column("input_quantity", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("input_amount", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.Column("input_invoice_number", sa.String(100), nullable=True),
        sa.Column("input_supplier", sa.String(200), nullable=True),
        sa.Column("input_received_by", sa.Integer(), nullable=True),
        sa.Column("input_expiry_date", sa.Date(), nullable=True),
        sa.Column("input_notes", sa.Text(), nullable=True),
        sa.Column("output_quantity", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("output_amount", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.Column("output_notes", sa.Text(), nullable=True),
        sa.Column("end_quantity", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("end_amount", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.Column("end_expiry_date", sa.Date(), nullable=True, index=True),
        sa.Column("status", sa.String(30), nullable=False, server_default="Tốt", index=True),
        sa.Column("quality_checked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("quality_checked_by", sa.Integer(), nullable=True),
        sa.Column("quality_checked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("quality_condition", sa.String(30), nullable=True),
        sa.Column("quality_rating", sa.Integer(), nullable=True),
        sa.Column("quality_notes", sa.Text(), nullable=True),
        *_timestamps(),
        *_audit(),
        sa.UniqueConstraint("date", "lttp_item_id", name="uq_lttp_inventory_date_item"),
    )

    op.create_table(
        "lttp_inventory_output_lines",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("record_id", sa.Integer(), sa.ForeignKey("lttp_inventory.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id", ondelete="SET NULL"), nullable=True),
        sa.Column("quantity", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("amount", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.Column("purpose", sa.String(20), nullable=True),
        sa.Column("requested_by", sa.Integer(), nullable=True),
        sa.Column("approved_by", sa.Integer(), nullable=True),
    )

    op.create_table(
        "lttp_inventory_alerts",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("record_id", sa.Integer(), sa.ForeignKey("lttp_inventory.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("message", sa.String(500), nullable=False),
        sa.Column("severity", sa.String(20), nullable=False),
        sa.Column("acknowledged", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
    )

    # Distribution allocations
    op.create_table(
        "lttp_distributions",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("date", sa.Date(), nullable=False, index=True),
        sa.Column("lttp_item_id", sa.Integer(), sa.ForeignKey("lttp_items.id", ondelete="RESTRICT"), nullable=False, index=True),
        sa.Column("total_suggested_quantity", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("total_actual_quantity", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("total_amount", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.Column("overall_status", sa.String(30), nullable=False, server_default="draft", index=True),
        sa.Column("requested_by", sa.Integer(), nullable=True),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approved_by", sa.Integer(), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejected_by", sa.Integer(), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("approval_notes", sa.Text(), nullable=True),
        sa.Column("started_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("distribution_notes", sa.Text(), nullable=True),
        sa.Column("budget_allocated_amount", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.Column("budget_actual_amount", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.Column("budget_variance", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.Column("budget_period", sa.String(20), nullable=True),
        sa.Column("quality_checked", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("quality_checked_by", sa.Integer(), nullable=True),
        sa.Column("quality_checked_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("quality_rating", sa.Integer(), nullable=True),
        sa.Column("quality_notes", sa.Text(), nullable=True),
        sa.Column("version", sa.Integer(), nullable=False, server_default="1"),
        *_timestamps(),
        *_audit(),
        sa.UniqueConstraint("date", "lttp_item_id", name="uq_lttp_distribution_date_item"),
    )

    op.create_table(
        "lttp_distribution_slots",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("allocation_id", sa.Integer(), sa.ForeignKey("lttp_distributions.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("slot_key", sa.String(30), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id", ondelete="SET NULL"), nullable=True),
        sa.Column("suggested_quantity", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("actual_quantity", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("amount", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.Column("personnel_count", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("status", sa.String(20), nullable=False, server_default="pending"),
        sa.Column("distributed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("distributed_by", sa.Integer(), nullable=True),
        sa.Column("received_by", sa.Integer(), nullable=True),
        sa.UniqueConstraint("allocation_id", "slot_key", name="uq_distribution_slot_key"),
    )

    op.create_table(
        "lttp_distribution_issues",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("allocation_id", sa.Integer(), sa.ForeignKey("lttp_distributions.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("type", sa.String(20), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("reported_by", sa.Integer(), nullable=True),
        sa.Column("reported_at", sa.DateTime(timezone=True), server_default=sa.func.now(), nullable=False),
        sa.Column("resolved", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("resolution", sa.Text(), nullable=True),
    )

    # Processing stations
    op.create_table(
        "processing_records",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("station_type", sa.String(20), nullable=False, index=True),
        sa.Column("date", sa.Date(), nullable=False, index=True),
        sa.Column("unit_id", sa.Integer(), sa.ForeignKey("units.id", ondelete="RESTRICT"), nullable=False, index=True),
        sa.Column("other_costs", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("quality_notes", sa.Text(), nullable=True),
        sa.Column("processed_by", sa.Integer(), nullable=True),
        sa.Column("supervised_by", sa.Integer(), nullable=True),
        sa.Column("total_input_cost", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.Column("total_output_value", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.Column("profit", sa.Numeric(16, 2), nullable=False, server_default="0"),
        sa.Column("profit_margin", sa.Numeric(10, 2), nullable=False, server_default="0"),
        *_timestamps(),
        *_audit(),
        sa.UniqueConstraint("station_type", "date", "unit_id", name="uq_processing_station_date_unit"),
    )

    op.create_table(
        "processing_inputs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("record_id", sa.Integer(), sa.ForeignKey("processing_records.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("material", sa.String(50), nullable=False),
        sa.Column("quantity", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("price", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("quality", sa.String(20), nullable=False, server_default="Tốt"),
        sa.Column("carry_over_from_previous_day", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.UniqueConstraint("record_id", "material", name="uq_processing_input_material"),
    )

    op.create_table(
        "processing_outputs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("record_id", sa.Integer(), sa.ForeignKey("processing_records.id", ondelete="CASCADE"), nullable=False, index=True),
        sa.Column("position", sa.Integer(), nullable=False, server_default="0"),
        sa.Column("product", sa.String(50), nullable=False),
        sa.Column("produced", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("carried_over", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("collected", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("actual_output", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("remaining", sa.Numeric(14, 3), nullable=False, server_default="0"),
        sa.Column("price_per_unit", sa.Numeric(14, 2), nullable=False, server_default="0"),
        sa.Column("quality", sa.String(20), nullable=False, server_default="Tốt"),
        sa.UniqueConstraint("record_id", "product", name="uq_processing_output_product"),
    )


def downgrade() -> None:
    op.drop_table("processing_outputs")
    op.drop_table("processing_inputs")
    op.drop_table("processing_records")
    op.drop_table("lttp_distribution_issues")
    op.drop_table("lttp_distribution_slots")
    op.drop_table("lttp_distributions")
    op.drop_table("lttp_inventory_alerts")
    op.drop_table("lttp_inventory_output_lines")
    op.drop_table("lttp_inventory")
    op.drop_index("ix_lttp_items_name_category", table_name="lttp_items")
    op.drop_table("units")
    op.drop_table("lttp_items")
