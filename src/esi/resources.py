"""
Catalog of cached ESI resources.

Each resource is a pydantic schema plus an immutable ResourceDescriptor.
Schemas declare the fields callers rely on and keep anything else ESI sends
(extra="allow"), so new upstream fields pass through untouched.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict

from esi.policy import DAY
from esi.types import Backend, ResourceDescriptor

# ESI error body for a page past the end of a listing
END_OF_PAGES = ("Requested page does not exist",)


class ESIModel(BaseModel):
    """Base for ESI payload schemas."""

    model_config = ConfigDict(extra="allow")


class IndustryJob(ESIModel):
    job_id: int
    activity_id: int
    blueprint_id: int
    blueprint_type_id: int
    facility_id: int
    installer_id: int
    runs: int
    status: str
    start_date: datetime
    end_date: datetime
    duration: int
    cost: float | None = None
    product_type_id: int | None = None
    completed_date: datetime | None = None


class MarketOrder(ESIModel):
    order_id: int
    type_id: int
    location_id: int
    region_id: int
    price: float
    volume_remain: int
    volume_total: int
    issued: datetime
    duration: int
    range: str
    is_buy_order: bool = False
    is_corporation: bool = False
    escrow: float | None = None


class Contact(ESIModel):
    contact_id: int
    contact_type: str
    standing: float
    is_blocked: bool | None = None
    is_watched: bool | None = None
    label_ids: list[int] | None = None


class Contract(ESIModel):
    contract_id: int
    type: str
    status: str
    issuer_id: int
    issuer_corporation_id: int
    assignee_id: int
    acceptor_id: int
    availability: str
    date_issued: datetime
    date_expired: datetime
    for_corporation: bool
    price: float | None = None
    reward: float | None = None
    title: str | None = None


class WalletTransaction(ESIModel):
    transaction_id: int
    journal_ref_id: int
    date: datetime
    type_id: int
    quantity: int
    unit_price: float
    client_id: int
    location_id: int
    is_buy: bool
    is_personal: bool


class FWCounts(ESIModel):
    last_week: int
    total: int
    yesterday: int


class FWStats(ESIModel):
    kills: FWCounts
    victory_points: FWCounts
    faction_id: int | None = None
    enlisted_on: datetime | None = None
    current_rank: int | None = None
    highest_rank: int | None = None


class Colony(ESIModel):
    planet_id: int
    planet_type: str
    solar_system_id: int
    owner_id: int
    upgrade_level: int
    num_pins: int
    last_update: datetime


class PlanetDetail(ESIModel):
    links: list[dict]
    pins: list[dict]
    routes: list[dict]


class StructureInfo(ESIModel):
    name: str
    owner_id: int
    solar_system_id: int
    type_id: int | None = None


class MoonExtraction(ESIModel):
    moon_id: int
    structure_id: int
    chunk_arrival_time: datetime
    extraction_start_time: datetime
    natural_decay_time: datetime


INDUSTRY_JOBS = ResourceDescriptor(
    name="industry_jobs",
    path="/characters/{character_id}/industry/jobs/",
    schema=IndustryJob,
    many=True,
    query=(("include_completed", "true"),),
)

CORP_INDUSTRY_JOBS = ResourceDescriptor(
    name="corp_industry_jobs",
    path="/corporations/{corporation_id}/industry/jobs/",
    schema=IndustryJob,
    many=True,
    paginated=True,
    key_fields=("corporation_id",),
    query=(("include_completed", "true"),),
    end_signatures=END_OF_PAGES,
)

MARKET_ORDERS = ResourceDescriptor(
    name="market_orders",
    path="/characters/{character_id}/orders/",
    schema=MarketOrder,
    many=True,
)

CONTACTS = ResourceDescriptor(
    name="contacts",
    path="/characters/{character_id}/contacts/",
    schema=Contact,
    many=True,
    paginated=True,
    end_signatures=END_OF_PAGES,
)

CONTRACTS = ResourceDescriptor(
    name="contracts",
    path="/characters/{character_id}/contracts/",
    schema=Contract,
    many=True,
    paginated=True,
    end_signatures=END_OF_PAGES,
)

WALLET_TRANSACTIONS = ResourceDescriptor(
    name="wallet_transactions",
    path="/characters/{character_id}/wallet/transactions/",
    schema=WalletTransaction,
    many=True,
)

FW_STATS = ResourceDescriptor(
    name="fw_stats",
    path="/characters/{character_id}/fw/stats/",
    schema=FWStats,
)

PLANETARY_COLONIES = ResourceDescriptor(
    name="planetary_colonies",
    path="/characters/{character_id}/planets/",
    schema=Colony,
    many=True,
)

PLANET_DETAIL = ResourceDescriptor(
    name="planet_detail",
    path="/characters/{character_id}/planets/{planet_id}/",
    schema=PlanetDetail,
    key_fields=("character_id", "planet_id"),
)

STRUCTURE_INFO = ResourceDescriptor(
    name="structure_info",
    path="/universe/structures/{structure_id}/",
    schema=StructureInfo,
    backend=Backend.TABLE,
    key_fields=("structure_id",),
    forbidden_ttl_seconds=DAY,
)

MOON_EXTRACTIONS = ResourceDescriptor(
    name="moon_extractions",
    path="/corporation/{corporation_id}/mining/extractions/",
    schema=MoonExtraction,
    many=True,
    paginated=True,
    key_fields=("corporation_id",),
    end_signatures=END_OF_PAGES,
)

RESOURCES: dict[str, ResourceDescriptor] = {
    descriptor.name: descriptor
    for descriptor in (
        INDUSTRY_JOBS,
        CORP_INDUSTRY_JOBS,
        MARKET_ORDERS,
        CONTACTS,
        CONTRACTS,
        WALLET_TRANSACTIONS,
        FW_STATS,
        PLANETARY_COLONIES,
        PLANET_DETAIL,
        STRUCTURE_INFO,
        MOON_EXTRACTIONS,
    )
}
