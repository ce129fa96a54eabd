# agrichain/services/traceability/traceability_services.py
from io import BytesIO
from typing import Dict, List, Optional, Tuple

import qrcode

from agrichain.blockchain import is_zero_address
from agrichain.models.ledger.ledger_models import HistoryEvent
from agrichain.models.traceability.traceability_models import (
    IngredientTimeline,
    LineageViewModel,
    TimelineEvent,
)
from agrichain.services.ledger.ledger_service import LedgerService


class TraceabilityService:
    """
    Compose the consumer-facing journey of a product:
      - main timeline: the product's history plus every ancestor reached by
        parentProductId, oldest first
      - ingredient timelines for recipe merges (recursively)
      - actor profiles for every address that appears (unknown actors and the
        zero address are tolerated and rendered without a name)
    """

    # -------------------------
    # Public API
    # -------------------------
    @staticmethod
    def build_lineage(ledger: LedgerService, product_id: int, public_base_url: str = "") -> Optional[LineageViewModel]:
        lin = ledger.lineage(product_id)
        if lin is None:
            return None

        p = lin.product
        vm = LineageViewModel(
            productId=p.product_id,
            name=p.name,
            quantity=p.quantity,
            unit=p.unit,
            currentState=int(p.current_state),
            stateName=p.current_state.name,
            currentOwner=p.current_owner,
            ancestorIds=list(lin.ancestor_ids),
            sourceProductIds=list(lin.source_ids),
        )

        profiles: Dict[str, Dict] = {}
        vm.timeline = TraceabilityService._events(ledger, lin.timeline, profiles)

        for src_id, events in lin.ingredient_timelines.items():
            src = ledger.get_product(src_id)
            vm.ingredients.append(
                IngredientTimeline(
                    productId=src_id,
                    name=src.name,
                    events=TraceabilityService._events(ledger, events, profiles),
                )
            )

        vm.actors = profiles
        if public_base_url:
            vm.publicUrl = TraceabilityService.public_url(public_base_url, p.product_id)
        return vm

    @staticmethod
    def public_url(base_url: str, product_id: int) -> str:
        return f"{base_url.rstrip('/')}/scan-product?id={product_id}"

    @staticmethod
    def qr_png(base_url: str, product_id: int) -> BytesIO:
        """PNG QR code that opens the public scan page for this product."""
        qr = qrcode.QRCode(
            version=None,
            error_correction=qrcode.constants.ERROR_CORRECT_H,
            box_size=10,
            border=3,
        )
        qr.add_data(TraceabilityService.public_url(base_url, product_id))
        qr.make(fit=True)
        img = qr.make_image(fill_color="black", back_color="white")

        buf = BytesIO()
        img.save(buf, format="PNG")
        buf.seek(0)
        return buf

    # -------------------------
    # Helpers
    # -------------------------
    @staticmethod
    def _events(
        ledger: LedgerService,
        events: List[Tuple[int, HistoryEvent]],
        profiles: Dict[str, Dict],
    ) -> List[TimelineEvent]:
        out: List[TimelineEvent] = []
        for pid, ev in events:
            name = ""
            if not is_zero_address(ev.actor):
                if ev.actor not in profiles:
                    profiles[ev.actor] = ledger.get_actor_profile(ev.actor).to_dict()
                name = profiles[ev.actor].get("name") or ""

            out.append(
                TimelineEvent(
                    productId=pid,
                    timestamp=ev.timestamp,
                    actor=ev.actor,
                    actorRole=int(ev.actor_role),
                    actorRoleName=ev.actor_role.label,
                    actorName=name,
                    details=ev.details,
                )
            )
        return out
