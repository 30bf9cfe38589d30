"""Shipment grouping — consolidate a candidate set's items by origin for joint logistics pricing."""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from decimal import Decimal

from sqlalchemy import bindparam, delete, select, text
from sqlalchemy.ext.asyncio import AsyncSession

from landed_cost.database.introspection import table_exists
from landed_cost.database.session import atomic
from landed_cost.exceptions import BusinessRuleException, NotFoundException, ValidationException
from landed_cost.models.candidate_set import CandidateItem
from landed_cost.models.enums import CandidateItemStatus, DataReadiness, ShipmentGroupStatus
from landed_cost.models.shipment_group import ShipmentGroup, ShipmentGroupItem
from landed_cost.modules.economics.candidates import CandidateImportService
from landed_cost.modules.economics.constants import (
    STANDARD_CONSOLIDATION,
    SUPPLIERS_TABLE,
    UNKNOWN_COUNTRY,
    UNKNOWN_COUNTRY_LABEL,
)
from landed_cost.modules.economics.normalizer import to_country_code

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class GroupableItem:
    candidate_item_id: int
    supplier_id: int | None
    from_country: str
    has_price: bool


@dataclass
class GroupPlan:
    key: str
    from_country: str
    items: list[GroupableItem] = field(default_factory=list)

    @property
    def supplier_count(self) -> int:
        return len({i.supplier_id for i in self.items if i.supplier_id})

    @property
    def data_readiness(self) -> DataReadiness:
        return compute_data_readiness([i.has_price for i in self.items])


def compute_data_readiness(priced_flags: list[bool]) -> DataReadiness:
    """All priced → ready, some → partial, none (or no items) → unknown."""
    if priced_flags and all(priced_flags):
        return DataReadiness.READY
    if any(priced_flags):
        return DataReadiness.PARTIAL
    return DataReadiness.UNKNOWN


def resolve_origin_country(snapshot: object, registered: object) -> str:
    return to_country_code(snapshot) or to_country_code(registered) or UNKNOWN_COUNTRY


class GroupingStrategy(ABC):
    name: str

    @abstractmethod
    def group_key(self, item: GroupableItem) -> str:
        """Items sharing a key ship together."""


class StandardOriginGrouping(GroupingStrategy):
    """One group per origin country under the fixed ``standard`` consolidation key."""

    name = STANDARD_CONSOLIDATION

    def group_key(self, item: GroupableItem) -> str:
        return f"{item.from_country.upper()}|{STANDARD_CONSOLIDATION}"


GROUPING_STRATEGIES: dict[str, GroupingStrategy] = {
    STANDARD_CONSOLIDATION: StandardOriginGrouping(),
}


def get_grouping_strategy(name: str | None) -> GroupingStrategy:
    strategy = GROUPING_STRATEGIES.get((name or STANDARD_CONSOLIDATION).strip().lower())
    if strategy is None:
        raise ValidationException(
            f"Unknown grouping strategy: {name}",
            details=[{"field": "strategy", "message": f"expected one of {sorted(GROUPING_STRATEGIES)}"}],
        )
    return strategy


def plan_groups(items: list[GroupableItem], strategy: GroupingStrategy) -> list[GroupPlan]:
    """Bucket items by the strategy's key, preserving first-appearance order."""
    plans: dict[str, GroupPlan] = {}
    for item in items:
        key = strategy.group_key(item)
        plan = plans.get(key)
        if plan is None:
            from_country = (key.split("|", 1)[0] or UNKNOWN_COUNTRY)[:2]
            plan = GroupPlan(key=key, from_country=from_country)
            plans[key] = plan
        plan.items.append(item)
    return list(plans.values())


def group_display_name(from_country: str, candidate_name: str) -> str:
    label = UNKNOWN_COUNTRY_LABEL if from_country == UNKNOWN_COUNTRY else from_country
    return f"{label} / {candidate_name}"


class ShipmentGroupService:
    def __init__(self, db: AsyncSession) -> None:
        self.db = db

    async def auto_from_candidate(
        self,
        rfq_id: int,
        candidate_set_id: int,
        *,
        to_country: str | None = None,
        replace_existing: bool = True,
        strategy: str | None = None,
    ) -> list[ShipmentGroup]:
        grouping = get_grouping_strategy(strategy)
        async with atomic(self.db):
            candidate = await CandidateImportService(self.db).get_active_candidate_set(
                rfq_id, candidate_set_id
            )
            items = await self._load_groupable_items(candidate_set_id)
            if not items:
                raise BusinessRuleException(
                    f"Candidate set {candidate_set_id} has no items to group"
                )

            if replace_existing:
                await self.db.execute(
                    delete(ShipmentGroup).where(
                        ShipmentGroup.rfq_id == rfq_id,
                        ShipmentGroup.candidate_set_id == candidate_set_id,
                    )
                )

            destination = to_country_code(to_country)
            created: list[ShipmentGroup] = []
            for sort_order, plan in enumerate(plan_groups(items, grouping), start=1):
                group = ShipmentGroup(
                    rfq_id=rfq_id,
                    candidate_set_id=candidate_set_id,
                    name=group_display_name(plan.from_country, candidate.name),
                    code=f"G{sort_order}",
                    sort_order=sort_order,
                    from_country=plan.from_country,
                    to_country=destination,
                    consolidation_key=plan.key,
                    urgency_bucket=STANDARD_CONSOLIDATION,
                    status=ShipmentGroupStatus.DRAFT,
                    data_readiness=plan.data_readiness,
                    total_items_count=len(plan.items),
                    total_suppliers_count=plan.supplier_count,
                )
                self.db.add(group)
                await self.db.flush()
                self.db.add_all(
                    ShipmentGroupItem(
                        shipment_group_id=group.id,
                        candidate_item_id=item.candidate_item_id,
                        sort_order=idx,
                        included=True,
                    )
                    for idx, item in enumerate(plan.items)
                )
                created.append(group)
            await self.db.flush()

        logger.info(
            "Created %d shipment groups for RFQ %s candidate set %s",
            len(created),
            rfq_id,
            candidate_set_id,
        )
        return created

    async def _load_groupable_items(self, candidate_set_id: int) -> list[GroupableItem]:
        result = await self.db.execute(
            select(CandidateItem)
            .where(
                CandidateItem.candidate_set_id == candidate_set_id,
                CandidateItem.status != CandidateItemStatus.BLOCKED,
            )
            .order_by(CandidateItem.id)
        )
        rows = list(result.scalars().all())
        registered = await self._registered_countries(
            {r.supplier_id for r in rows if r.supplier_id and not to_country_code(r.supplier_country_snapshot)}
        )
        return [
            GroupableItem(
                candidate_item_id=row.id,
                supplier_id=row.supplier_id,
                from_country=resolve_origin_country(
                    row.supplier_country_snapshot, registered.get(row.supplier_id)
                ),
                has_price=bool(row.has_price),
            )
            for row in rows
        ]

    async def _registered_countries(self, supplier_ids: set[int]) -> dict[int, str | None]:
        """Supplier-registered countries, used when an item carries no country snapshot."""
        if not supplier_ids or not await table_exists(self.db, SUPPLIERS_TABLE):
            return {}
        stmt = text("SELECT id, country FROM part_suppliers WHERE id IN :ids").bindparams(
            bindparam("ids", expanding=True)
        )
        result = await self.db.execute(stmt, {"ids": sorted(supplier_ids)})
        return {row.id: row.country for row in result}

    async def list_groups(self, rfq_id: int, candidate_set_id: int | None = None) -> list[ShipmentGroup]:
        query = select(ShipmentGroup).where(ShipmentGroup.rfq_id == rfq_id)
        if candidate_set_id:
            query = query.where(ShipmentGroup.candidate_set_id == candidate_set_id)
        query = query.order_by(
            ShipmentGroup.candidate_set_id, ShipmentGroup.sort_order, ShipmentGroup.id
        )
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_group(self, group_id: int) -> ShipmentGroup:
        result = await self.db.execute(select(ShipmentGroup).where(ShipmentGroup.id == group_id))
        group = result.scalar_one_or_none()
        if group is None:
            raise NotFoundException(f"Shipment group {group_id} not found")
        return group

    async def update_measures(
        self,
        group_id: int,
        weight_kg: Decimal | None,
        volume_cbm: Decimal | None,
    ) -> ShipmentGroup:
        for label, value in (("weight_kg", weight_kg), ("volume_cbm", volume_cbm)):
            if value is not None and value < 0:
                raise ValidationException(
                    f"{label} must not be negative",
                    details=[{"field": label, "message": "must be >= 0"}],
                )
        group = await self.get_group(group_id)
        async with atomic(self.db):
            group.total_weight_kg = weight_kg
            group.total_volume_cbm = volume_cbm
            await self.db.flush()
        logger.info("Shipment group %s measures set: %s kg, %s cbm", group_id, weight_kg, volume_cbm)
        return group

    async def delete_group(self, group_id: int) -> None:
        """Delete a group; its item links and scenario routes go with it."""
        group = await self.get_group(group_id)
        async with atomic(self.db):
            await self.db.delete(group)
            await self.db.flush()
        logger.info("Shipment group %s deleted", group_id)
