import enum

from sqlalchemy import Enum as SQLAlchemyEnum


def enum_column_type(enum_cls: type[enum.Enum]) -> SQLAlchemyEnum:
    """VARCHAR-backed enum that stores member values (lower-case) rather than names."""
    return SQLAlchemyEnum(
        enum_cls,
        native_enum=False,
        create_constraint=False,
        length=32,
        values_callable=lambda members: [m.value for m in members],
    )


class CandidateSetStatus(str, enum.Enum):
    DRAFT = "draft"
    CANDIDATE = "candidate"
    SELECTED_FOR_ECONOMICS = "selected_for_economics"
    ARCHIVED = "archived"


class ConsolidationPotential(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"
    UNKNOWN = "unknown"


class SlotStatus(str, enum.Enum):
    EMPTY = "empty"
    PARTIAL = "partial"
    COVERED_PRICED = "covered_priced"


class CandidateItemStatus(str, enum.Enum):
    CANDIDATE = "candidate"
    NO_PRICE = "no_price"
    BLOCKED = "blocked"


class DataReadiness(str, enum.Enum):
    READY = "ready"
    PARTIAL = "partial"
    UNKNOWN = "unknown"


class ShipmentGroupStatus(str, enum.Enum):
    DRAFT = "draft"
    CONFIRMED = "confirmed"
    ARCHIVED = "archived"


class ScenarioStatus(str, enum.Enum):
    DRAFT = "draft"
    CALCULATED = "calculated"
    SELECTED = "selected"
    ARCHIVED = "archived"


class ScenarioStrategy(str, enum.Enum):
    MIN_LANDED = "MIN_LANDED"
    MIN_ETA = "MIN_ETA"
    BALANCED = "BALANCED"
    MANUAL = "MANUAL"


class RouteSourceType(str, enum.Enum):
    TEMPLATE = "template"
    ADHOC = "adhoc"


class CalcStatus(str, enum.Enum):
    DRAFT = "draft"
    OK = "ok"
    WARNING = "warning"
    ERROR = "error"
    NOT_APPLICABLE = "not_applicable"


class PricingModel(str, enum.Enum):
    FIXED = "fixed"
    PER_KG = "per_kg"
    PER_CBM = "per_cbm"
    PER_KG_OR_CBM_MAX = "per_kg_or_cbm_max"
    HYBRID = "hybrid"
