"""Economics core - FX rates, route templates, auto scenarios, candidates, groups, scenarios

Revision ID: 001
Revises:
Create Date: 2026-10-18

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import JSONB

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def _id() -> sa.Column:
    return sa.Column("id", sa.BigInteger, sa.Identity(), primary_key=True)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def _money(name: str) -> sa.Column:
    return sa.Column(name, sa.Numeric(18, 4), nullable=True)


def upgrade() -> None:
    # 1. fx_rates
    op.create_table(
        "fx_rates",
        _id(),
        sa.Column("base_currency", sa.String(3), nullable=False),
        sa.Column("quote_currency", sa.String(3), nullable=False),
        sa.Column("rate", sa.Numeric(20, 10), nullable=False),
        sa.Column("as_of", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("base_currency", "quote_currency", name="uq_fx_rates_pair"),
    )
    op.create_index(
        "ix_fx_rates_pair_as_of", "fx_rates", ["base_currency", "quote_currency", "as_of"]
    )

    # 2. rfq_econ_settings
    op.create_table(
        "rfq_econ_settings",
        _id(),
        sa.Column("rfq_id", sa.BigInteger, nullable=False, unique=True),
        sa.Column("target_currency", sa.String(3), nullable=True),
        *_timestamps(),
    )

    # 3. logistics_corridors
    op.create_table(
        "logistics_corridors",
        _id(),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("from_country", sa.String(2), nullable=True),
        sa.Column("to_country", sa.String(2), nullable=True),
        sa.Column("transport_mode", sa.String(32), nullable=True),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        *_timestamps(),
    )

    # 4. route_templates
    op.create_table(
        "route_templates",
        _id(),
        sa.Column(
            "corridor_id",
            sa.BigInteger,
            sa.ForeignKey("logistics_corridors.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("transport_mode", sa.String(32), nullable=True),
        sa.Column("from_country", sa.String(2), nullable=True),
        sa.Column("to_country", sa.String(2), nullable=True),
        sa.Column("pricing_model", sa.String(32), server_default="fixed", nullable=False),
        sa.Column("currency", sa.String(3), nullable=True),
        _money("fixed_cost"),
        _money("rate_per_kg"),
        _money("rate_per_cbm"),
        _money("min_cost"),
        sa.Column("markup_pct", sa.Numeric(9, 4), nullable=True),
        _money("markup_fixed"),
        sa.Column("volumetric_kg_per_cbm", sa.Numeric(12, 4), nullable=True),
        sa.Column("round_step_kg", sa.Numeric(12, 4), nullable=True),
        sa.Column("round_step_cbm", sa.Numeric(12, 4), nullable=True),
        sa.Column("eta_min_days", sa.Integer, nullable=True),
        sa.Column("eta_max_days", sa.Integer, nullable=True),
        sa.Column("comment", sa.Text, nullable=True),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_route_templates_corridor_id", "route_templates", ["corridor_id"])
    op.create_index("ix_route_templates_countries", "route_templates", ["from_country", "to_country"])

    # 5. auto_scenarios
    op.create_table(
        "auto_scenarios",
        _id(),
        sa.Column("rfq_id", sa.BigInteger, nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("strategy", sa.String(64), server_default="MIN_LANDED", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_auto_scenarios_rfq_id", "auto_scenarios", ["rfq_id"])

    # 6. auto_scenario_lines
    op.create_table(
        "auto_scenario_lines",
        _id(),
        sa.Column(
            "scenario_id",
            sa.BigInteger,
            sa.ForeignKey("auto_scenarios.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("rfq_item_id", sa.BigInteger, nullable=True),
        sa.Column("response_line_id", sa.BigInteger, nullable=True),
        sa.Column("selection_key_norm", sa.String(255), nullable=True),
        sa.Column("rfq_supplier_id", sa.BigInteger, nullable=True),
        sa.Column("supplier_id", sa.BigInteger, nullable=True),
        sa.Column("route_id", sa.BigInteger, nullable=True),
        _money("goods_amount"),
        _money("logistics_amount"),
        _money("duty_amount"),
        _money("landed_amount"),
        sa.Column("landed_currency", sa.String(3), nullable=True),
        sa.Column("eta_total_days", sa.Numeric(10, 2), nullable=True),
        sa.Column("supplier_score", sa.Numeric(10, 4), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_auto_scenario_lines_scenario_id", "auto_scenario_lines", ["scenario_id"])

    # 7. candidate_sets
    op.create_table(
        "candidate_sets",
        _id(),
        sa.Column("rfq_id", sa.BigInteger, nullable=False),
        sa.Column("rfq_item_id", sa.BigInteger, nullable=False),
        sa.Column("source_type", sa.String(32), server_default="COVERAGE", nullable=False),
        sa.Column("source_ref", sa.String(255), nullable=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("combo_hash", sa.String(255), nullable=True),
        sa.Column("progress_structure_pct", sa.Numeric(7, 2), server_default="0", nullable=False),
        sa.Column("progress_priced_pct", sa.Numeric(7, 2), server_default="0", nullable=False),
        sa.Column("oem_ok", sa.Boolean, server_default="false", nullable=False),
        sa.Column("supplier_count", sa.Integer, server_default="0", nullable=False),
        sa.Column("country_count", sa.Integer, server_default="0", nullable=False),
        sa.Column("consolidation_potential", sa.String(32), server_default="unknown", nullable=False),
        sa.Column("score_total", sa.Numeric(12, 4), nullable=True),
        sa.Column("status", sa.String(32), server_default="draft", nullable=False),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        sa.Column("payload_json", JSONB, nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_candidate_sets_rfq_item", "candidate_sets", ["rfq_id", "rfq_item_id"])
    op.create_index(
        "ix_candidate_sets_combo_hash", "candidate_sets", ["rfq_id", "rfq_item_id", "combo_hash"]
    )

    # 8. candidate_suppliers
    op.create_table(
        "candidate_suppliers",
        _id(),
        sa.Column(
            "candidate_set_id",
            sa.BigInteger,
            sa.ForeignKey("candidate_sets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("supplier_id", sa.BigInteger, nullable=False),
        sa.Column("supplier_name_snapshot", sa.String(255), nullable=True),
        sa.Column("supplier_country_snapshot", sa.String(2), nullable=True),
        sa.Column("sort_order", sa.Integer, server_default="0", nullable=False),
    )
    op.create_index("ix_candidate_suppliers_set_id", "candidate_suppliers", ["candidate_set_id"])

    # 9. candidate_slots
    op.create_table(
        "candidate_slots",
        _id(),
        sa.Column(
            "candidate_set_id",
            sa.BigInteger,
            sa.ForeignKey("candidate_sets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("slot_key", sa.String(255), nullable=False),
        sa.Column("slot_name", sa.String(255), nullable=False),
        sa.Column("chosen_variant_key", sa.String(255), nullable=True),
        sa.Column("chosen_variant_name", sa.String(255), nullable=True),
        sa.Column("variant_progress_pct", sa.Numeric(7, 2), server_default="0", nullable=False),
        sa.Column("variant_priced_progress_pct", sa.Numeric(7, 2), server_default="0", nullable=False),
        sa.Column("is_oem_critical", sa.Boolean, server_default="false", nullable=False),
        sa.Column("oem_ok", sa.Boolean, server_default="false", nullable=False),
        sa.Column("status", sa.String(32), server_default="empty", nullable=False),
        sa.Column("payload_json", JSONB, nullable=True),
    )
    op.create_index("ix_candidate_slots_set_id", "candidate_slots", ["candidate_set_id"])

    # 10. candidate_items
    op.create_table(
        "candidate_items",
        _id(),
        sa.Column(
            "candidate_set_id",
            sa.BigInteger,
            sa.ForeignKey("candidate_sets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("rfq_item_id", sa.BigInteger, nullable=False),
        sa.Column("slot_key", sa.String(255), nullable=False),
        sa.Column("slot_name", sa.String(255), nullable=True),
        sa.Column("variant_key", sa.String(255), nullable=True),
        sa.Column("variant_name", sa.String(255), nullable=True),
        sa.Column("atom_key", sa.String(255), nullable=False),
        sa.Column("atom_kind", sa.String(32), server_default="manual", nullable=False),
        sa.Column("atom_name", sa.String(255), nullable=True),
        sa.Column("supplier_id", sa.BigInteger, nullable=False),
        sa.Column("supplier_name_snapshot", sa.String(255), nullable=True),
        sa.Column("supplier_country_snapshot", sa.String(2), nullable=True),
        _money("qty"),
        _money("goods_amount"),
        sa.Column("goods_currency", sa.String(3), nullable=True),
        sa.Column("lead_time_days", sa.Integer, nullable=True),
        _money("moq"),
        _money("lot_size"),
        sa.Column("packaging", sa.String(255), nullable=True),
        sa.Column("has_price", sa.Boolean, server_default="false", nullable=False),
        sa.Column("is_oem_offer", sa.Boolean, server_default="false", nullable=False),
        sa.Column("status", sa.String(32), server_default="no_price", nullable=False),
        sa.Column("payload_json", JSONB, nullable=True),
    )
    op.create_index("ix_candidate_items_set_id", "candidate_items", ["candidate_set_id"])
    op.create_index("ix_candidate_items_supplier_id", "candidate_items", ["supplier_id"])

    # 11. shipment_groups
    op.create_table(
        "shipment_groups",
        _id(),
        sa.Column("rfq_id", sa.BigInteger, nullable=False),
        sa.Column(
            "candidate_set_id",
            sa.BigInteger,
            sa.ForeignKey("candidate_sets.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("code", sa.String(32), nullable=False),
        sa.Column("sort_order", sa.Integer, server_default="0", nullable=False),
        sa.Column("from_country", sa.String(2), server_default="UN", nullable=False),
        sa.Column("to_country", sa.String(2), nullable=True),
        sa.Column("consolidation_key", sa.String(64), nullable=False),
        sa.Column("urgency_bucket", sa.String(32), server_default="standard", nullable=False),
        sa.Column("status", sa.String(32), server_default="draft", nullable=False),
        sa.Column("data_readiness", sa.String(32), server_default="unknown", nullable=False),
        sa.Column("total_items_count", sa.Integer, server_default="0", nullable=False),
        sa.Column("total_suppliers_count", sa.Integer, server_default="0", nullable=False),
        sa.Column("total_weight_kg", sa.Numeric(18, 4), nullable=True),
        sa.Column("total_volume_cbm", sa.Numeric(18, 6), nullable=True),
        *_timestamps(),
    )
    op.create_index(
        "ix_shipment_groups_rfq_candidate", "shipment_groups", ["rfq_id", "candidate_set_id"]
    )

    # 12. shipment_group_items
    op.create_table(
        "shipment_group_items",
        _id(),
        sa.Column(
            "shipment_group_id",
            sa.BigInteger,
            sa.ForeignKey("shipment_groups.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "candidate_item_id",
            sa.BigInteger,
            sa.ForeignKey("candidate_items.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("sort_order", sa.Integer, server_default="0", nullable=False),
        sa.Column("included", sa.Boolean, server_default="true", nullable=False),
        sa.Column("qty_override", sa.Numeric(18, 4), nullable=True),
    )
    op.create_index("ix_shipment_group_items_group_id", "shipment_group_items", ["shipment_group_id"])
    op.create_index(
        "ix_shipment_group_items_candidate_item_id", "shipment_group_items", ["candidate_item_id"]
    )

    # 13. econ_scenarios
    op.create_table(
        "econ_scenarios",
        _id(),
        sa.Column("rfq_id", sa.BigInteger, nullable=False),
        sa.Column(
            "candidate_set_id",
            sa.BigInteger,
            sa.ForeignKey("candidate_sets.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("source_type", sa.String(32), server_default="auto_from_coverage", nullable=False),
        sa.Column("strategy", sa.String(32), server_default="MANUAL", nullable=False),
        sa.Column("calc_currency", sa.String(3), server_default="USD", nullable=False),
        sa.Column("status", sa.String(32), server_default="draft", nullable=False),
        _money("goods_total"),
        _money("logistics_total"),
        _money("duty_total"),
        _money("other_total"),
        _money("landed_total"),
        sa.Column("eta_best_days", sa.Integer, nullable=True),
        sa.Column("eta_worst_days", sa.Integer, nullable=True),
        sa.Column("coverage_progress_pct", sa.Numeric(7, 2), server_default="0", nullable=False),
        sa.Column("priced_progress_pct", sa.Numeric(7, 2), server_default="0", nullable=False),
        sa.Column("oem_ok", sa.Boolean, server_default="false", nullable=False),
        sa.Column("warning_count", sa.Integer, server_default="0", nullable=False),
        *_timestamps(),
    )
    op.create_index(
        "ix_econ_scenarios_rfq_candidate", "econ_scenarios", ["rfq_id", "candidate_set_id"]
    )

    # 14. scenario_group_routes
    op.create_table(
        "scenario_group_routes",
        _id(),
        sa.Column(
            "scenario_id",
            sa.BigInteger,
            sa.ForeignKey("econ_scenarios.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column(
            "shipment_group_id",
            sa.BigInteger,
            sa.ForeignKey("shipment_groups.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("route_source_type", sa.String(32), server_default="template", nullable=False),
        sa.Column(
            "route_template_id",
            sa.BigInteger,
            sa.ForeignKey("route_templates.id", ondelete="SET NULL"),
            nullable=True,
        ),
        sa.Column("pricing_model", sa.String(32), nullable=True),
        sa.Column("currency", sa.String(3), nullable=True),
        _money("fixed_cost"),
        _money("rate_per_kg"),
        _money("rate_per_cbm"),
        _money("min_cost"),
        sa.Column("markup_pct", sa.Numeric(9, 4), nullable=True),
        _money("markup_fixed"),
        sa.Column("weight_kg", sa.Numeric(18, 4), nullable=True),
        sa.Column("volume_cbm", sa.Numeric(18, 6), nullable=True),
        _money("logistics_amount_calc"),
        sa.Column("eta_min_days_calc", sa.Integer, nullable=True),
        sa.Column("eta_max_days_calc", sa.Integer, nullable=True),
        _money("duty_amount"),
        sa.Column("duty_currency", sa.String(3), nullable=True),
        sa.Column("calc_status", sa.String(32), server_default="draft", nullable=False),
        sa.Column("calc_message", sa.Text, nullable=True),
        sa.Column("selected_for_scenario", sa.Boolean, server_default="true", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_scenario_group_routes_scenario_id", "scenario_group_routes", ["scenario_id"])
    op.create_index("ix_scenario_group_routes_group_id", "scenario_group_routes", ["shipment_group_id"])

    # 15. scenario_other_costs
    op.create_table(
        "scenario_other_costs",
        _id(),
        sa.Column(
            "scenario_id",
            sa.BigInteger,
            sa.ForeignKey("econ_scenarios.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("name", sa.String(255), nullable=False),
        _money("amount"),
        sa.Column("currency", sa.String(3), nullable=True),
        sa.Column("quantity", sa.Numeric(18, 4), server_default="1", nullable=False),
        sa.Column("enabled", sa.Boolean, server_default="true", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_scenario_other_costs_scenario_id", "scenario_other_costs", ["scenario_id"])


def downgrade() -> None:
    for table in (
        "scenario_other_costs",
        "scenario_group_routes",
        "econ_scenarios",
        "shipment_group_items",
        "shipment_groups",
        "candidate_items",
        "candidate_slots",
        "candidate_suppliers",
        "candidate_sets",
        "auto_scenario_lines",
        "auto_scenarios",
        "route_templates",
        "logistics_corridors",
        "rfq_econ_settings",
        "fx_rates",
    ):
        op.drop_table(table)
