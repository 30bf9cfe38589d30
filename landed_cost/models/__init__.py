# Import all models so SQLAlchemy metadata is populated for Alembic autogenerate
from landed_cost.models.auto_scenario import AutoScenario, AutoScenarioLine
from landed_cost.models.candidate_set import (
    CandidateItem,
    CandidateSet,
    CandidateSlot,
    CandidateSupplier,
)
from landed_cost.models.enums import (
    CalcStatus,
    CandidateItemStatus,
    CandidateSetStatus,
    ConsolidationPotential,
    DataReadiness,
    PricingModel,
    RouteSourceType,
    ScenarioStatus,
    ScenarioStrategy,
    ShipmentGroupStatus,
    SlotStatus,
)
from landed_cost.models.fx_rate import FxRate, RfqEconSettings
from landed_cost.models.route_template import LogisticsCorridor, RouteTemplate
from landed_cost.models.scenario import EconScenario, ScenarioGroupRoute, ScenarioOtherCost
from landed_cost.models.shipment_group import ShipmentGroup, ShipmentGroupItem

__all__ = [
    "AutoScenario",
    "AutoScenarioLine",
    "CalcStatus",
    "CandidateItem",
    "CandidateItemStatus",
    "CandidateSet",
    "CandidateSetStatus",
    "CandidateSlot",
    "CandidateSupplier",
    "ConsolidationPotential",
    "DataReadiness",
    "EconScenario",
    "FxRate",
    "LogisticsCorridor",
    "PricingModel",
    "RfqEconSettings",
    "RouteSourceType",
    "RouteTemplate",
    "ScenarioGroupRoute",
    "ScenarioOtherCost",
    "ScenarioStatus",
    "ScenarioStrategy",
    "ShipmentGroup",
    "ShipmentGroupItem",
    "ShipmentGroupStatus",
    "SlotStatus",
]
