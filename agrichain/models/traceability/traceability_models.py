# agrichain/models/traceability/traceability_models.py
from dataclasses import dataclass, asdict, field
from typing import Any, Dict, List, Optional


@dataclass
class TimelineEvent:
    productId: int = 0
    timestamp: int = 0
    actor: str = ""
    actorRole: int = 0
    actorRoleName: str = ""
    actorName: str = ""     # "" when the actor has no on-chain profile
    details: str = ""


@dataclass
class IngredientTimeline:
    productId: int = 0
    name: str = ""
    events: List[TimelineEvent] = field(default_factory=list)


@dataclass
class LineageViewModel:
    productId: int = 0
    name: str = ""
    quantity: int = 0
    unit: str = ""
    currentState: int = 0
    stateName: str = ""
    currentOwner: str = ""

    # oldest first: root harvest -> ... -> this product
    timeline: List[TimelineEvent] = field(default_factory=list)
    ancestorIds: List[int] = field(default_factory=list)

    # recipe merges only
    sourceProductIds: List[int] = field(default_factory=list)
    ingredients: List[IngredientTimeline] = field(default_factory=list)

    actors: Dict[str, Dict[str, Any]] = field(default_factory=dict)
    publicUrl: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
