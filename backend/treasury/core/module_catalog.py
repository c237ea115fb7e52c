"""Module Catalog - static, versioned table of unlockable capabilities.

Invariants:
    - Module ids and priorities are unique
    - paid=False implies monthly_cost == 0
    - Exactly the modules with default_active=True start active
    - Adding a module is a code change, never a runtime operation

Design Decisions:
    - Frozen dataclasses in an insertion-ordered dict: catalog order is the
      order records are persisted and reported in
"""

from dataclasses import dataclass
from decimal import Decimal

from treasury.core.domain_types import ModuleId
from treasury.core.errors import UnknownModuleError


@dataclass(frozen=True)
class ModuleDefinition:
    id: ModuleId
    name: str
    monthly_cost: Decimal
    owner_bank_min: Decimal
    paid: bool
    priority: int
    description: str = ""
    revenue_estimate: str = ""
    default_active: bool = False


def build_catalog(*modules: ModuleDefinition) -> dict[ModuleId, ModuleDefinition]:
    """Index modules by id after checking the catalog invariants."""
    catalog: dict[ModuleId, ModuleDefinition] = {}
    priorities: set[int] = set()
    for module in modules:
        if module.id in catalog:
            raise ValueError(f"duplicate module id '{module.id}'")
        if module.priority in priorities:
            raise ValueError(f"duplicate priority {module.priority} ('{module.id}')")
        if not module.paid and module.monthly_cost != 0:
            raise ValueError(f"free module '{module.id}' has a monthly cost")
        if module.monthly_cost < 0 or module.owner_bank_min < 0:
            raise ValueError(f"module '{module.id}' has a negative threshold or cost")
        catalog[module.id] = module
        priorities.add(module.priority)
    return catalog


MODULE_CATALOG: dict[ModuleId, ModuleDefinition] = build_catalog(
    ModuleDefinition(
        id=ModuleId("youtube"),
        name="YouTube Automation",
        monthly_cost=Decimal("0"),
        owner_bank_min=Decimal("0"),
        paid=False,
        priority=1,
        description="Scripts, uploads, SEO-optimized titles/descriptions daily",
        revenue_estimate="$50-400/mo (scales with subscribers)",
        default_active=True,
    ),
    ModuleDefinition(
        id=ModuleId("printify"),
        name="Print-on-Demand (Printify + Etsy)",
        monthly_cost=Decimal("0"),
        owner_bank_min=Decimal("500"),
        paid=False,
        priority=2,
        description="Auto-designs and lists t-shirts, mugs, posters on Etsy",
        revenue_estimate="$100-600/mo",
    ),
    ModuleDefinition(
        id=ModuleId("ai_video"),
        name="AI Video Generation (Runway ML)",
        monthly_cost=Decimal("15"),
        owner_bank_min=Decimal("1000"),
        paid=True,
        priority=3,
        description="Cinematic AI clips for YouTube Shorts + Reels",
        revenue_estimate="$200-800/mo additional reach",
    ),
    ModuleDefinition(
        id=ModuleId("ai_images"),
        name="AI Image Generation (DALL-E 3)",
        monthly_cost=Decimal("15"),
        owner_bank_min=Decimal("2000"),
        paid=True,
        priority=4,
        description="Product images, thumbnails, Etsy designs, ad creatives",
        revenue_estimate="+20-40% conversion lift across all channels",
    ),
)


def get_module(
    module_id: str, catalog: dict[ModuleId, ModuleDefinition] = MODULE_CATALOG,
) -> ModuleDefinition:
    try:
        return catalog[ModuleId(module_id)]
    except KeyError:
        raise UnknownModuleError(module_id) from None


def by_priority(
    catalog: dict[ModuleId, ModuleDefinition] = MODULE_CATALOG,
) -> list[ModuleDefinition]:
    return sorted(catalog.values(), key=lambda m: m.priority)
