"""Landed-cost economics: line options, candidate consolidation, route pricing and scenarios."""

from landed_cost.modules.economics.candidates import CandidateImportService
from landed_cost.modules.economics.dashboard import DashboardService
from landed_cost.modules.economics.grouping import ShipmentGroupService
from landed_cost.modules.economics.line_options import LineOptionService
from landed_cost.modules.economics.recalculator import ScenarioRecalculator
from landed_cost.modules.economics.scenarios import ScenarioService
from landed_cost.modules.economics.selector import MinLandedSelectorService

__all__ = [
    "CandidateImportService",
    "DashboardService",
    "LineOptionService",
    "MinLandedSelectorService",
    "ScenarioRecalculator",
    "ScenarioService",
    "ShipmentGroupService",
]
