"""Order draft mutations

OrderMutator applies one analysis action at a time to a copy of the draft and
recomputes the totals from scratch afterwards. It never touches storage; the
lifecycle manager persists the resulting draft through the store.
"""

import re
from typing import List, NamedTuple, Optional

import structlog

from orderchat.conversation.analyzer import KeywordAnalyzer
from orderchat.schemas.conversation import (
    Analysis,
    DeliveryAddress,
    ExtractedItem,
    OrderDraft,
    OrderItem,
)
from orderchat.schemas.restaurant import CatalogItem

logger = structlog.get_logger()

REMOVE_KEYWORDS = ["quita", "elimina", "cancelar", "ya no"]
CHANGE_KEYWORDS = ["cambiar", "modificar", "en lugar de", "mejor"]

# Words this short ("de", "la") would match almost any catalog name
MIN_KEYWORD_LENGTH = 3

ORDINAL_PATTERN = re.compile(r"(\d+)")


class MutationResult(NamedTuple):
    draft: OrderDraft
    changed: bool


def resolve_catalog_item(name: str, catalog: List[CatalogItem]) -> Optional[CatalogItem]:
    """Exact name, then substring either way, then a shared keyword"""
    wanted = name.lower().strip()
    if not wanted:
        return None

    for item in catalog:
        if item.name.lower() == wanted:
            return item

    for item in catalog:
        candidate = item.name.lower()
        if candidate in wanted or wanted in candidate:
            return item

    keywords = [word for word in wanted.split() if len(word) >= MIN_KEYWORD_LENGTH]
    for item in catalog:
        item_words = item.name.lower().split()
        if any(keyword in word for keyword in keywords for word in item_words):
            return item

    return None


class OrderMutator:
    """Pure draft transformations keyed by analysis action name"""

    def apply(
        self,
        draft: OrderDraft,
        action: str,
        analysis: Analysis,
        user_text: str,
        catalog: List[CatalogItem],
    ) -> MutationResult:
        """Apply a single action; a failing action leaves the draft as it was"""
        working = draft.model_copy(deep=True)

        try:
            if action == "add_items":
                changed = self.add_items(working, analysis.extracted_data.items, catalog)
            elif action == "remove_items":
                changed = self.remove_items(working, user_text)
            elif action == "modify_order":
                changed = self.modify_order(working, analysis, user_text, catalog)
            elif action == "save_address":
                changed = self.save_address(working, analysis.extracted_data.address)
            else:
                logger.debug("Unknown action skipped", action=action)
                return MutationResult(draft, False)
        except Exception as e:
            logger.warning("Order mutation failed, action skipped", action=action, error=str(e))
            return MutationResult(draft, False)

        if not changed:
            return MutationResult(draft, False)

        working.recalculate()
        return MutationResult(working, True)

    def add_items(
        self,
        draft: OrderDraft,
        extracted: List[ExtractedItem],
        catalog: List[CatalogItem],
    ) -> bool:
        added = False
        for mention in extracted:
            item = resolve_catalog_item(mention.name, catalog)
            if item is None:
                logger.warning("Item not found in catalog", searched_item=mention.name)
                continue

            line = OrderItem(
                catalog_item_id=item.id,
                name=item.name,
                unit_price_cents=item.price_cents,
                quantity=max(mention.quantity, 1),
            )
            line.item_total_cents = line.compute_total()
            draft.items.append(line)
            added = True

            logger.info(
                "Item added to order",
                item_name=item.name,
                quantity=line.quantity,
                item_total_cents=line.item_total_cents,
            )
        return added

    def remove_items(self, draft: OrderDraft, user_text: str) -> bool:
        """Lines named in the text, else the first number as a 1-based position"""
        if not draft.items or not user_text:
            return False

        lowered = user_text.lower()
        targets = [index for index, item in enumerate(draft.items) if item.name.lower() in lowered]

        if not targets:
            match = ORDINAL_PATTERN.search(user_text)
            if match:
                index = int(match.group(1)) - 1
                if 0 <= index < len(draft.items):
                    targets.append(index)

        if not targets:
            return False

        for index in sorted(targets, reverse=True):
            removed = draft.items.pop(index)
            logger.info("Item removed from order", item_name=removed.name, position=index + 1)
        return True

    def modify_order(
        self,
        draft: OrderDraft,
        analysis: Analysis,
        user_text: str,
        catalog: List[CatalogItem],
    ) -> bool:
        lowered = (user_text or "").lower()

        if any(keyword in lowered for keyword in REMOVE_KEYWORDS):
            return self.remove_items(draft, user_text)

        if any(keyword in lowered for keyword in CHANGE_KEYWORDS):
            removed = self.remove_items(draft, user_text)
            if "add_items" in analysis.actions:
                return removed

            replacements = KeywordAnalyzer().extract_order_items(user_text)
            added = self.add_items(draft, replacements, catalog)
            return removed or added

        return False

    def save_address(self, draft: OrderDraft, fragment: Optional[DeliveryAddress]) -> bool:
        if fragment is None:
            return False

        current = draft.delivery_address or DeliveryAddress()
        draft.delivery_address = current.merge(fragment)

        logger.info(
            "Address saved to order",
            address_fields=sorted(fragment.model_dump(exclude_none=True).keys()),
        )
        return True
