"""Interpretation of completion replies

The Analyzer interface turns free text into an Analysis record. The only
implementation shipped is KeywordAnalyzer, a keyword and regex heuristic;
a model-based classifier can replace it without touching the mutator or the
lifecycle manager.
"""

from abc import ABC, abstractmethod
import re
from typing import List, Optional

import structlog

from orderchat.constants import ConversationStep
from orderchat.schemas.conversation import (
    Analysis,
    DeliveryAddress,
    ExtractedItem,
)

logger = structlog.get_logger()

ORDERING_KEYWORDS = [
    "quiero", "pedir", "ordenar", "llevar", "agregar",
    "menu", "menú", "carta", "disponible", "precio",
    "cuanto cuesta", "alitas", "hamburguesa", "bebida",
]

ADDRESS_KEYWORDS = [
    "dirección", "direccion", "domicilio", "entregar",
    "calle", "colonia", "número", "numero", "referencias",
]

CONFIRMATION_KEYWORDS = [
    "confirmar", "pedido listo", "es todo", "sería todo",
    "así está bien", "perfecto", "proceder",
]

# "quita"/"elimina" also cover the infinitives
MODIFICATION_KEYWORDS = [
    "cambiar", "quita", "elimina", "modificar",
    "en lugar de", "mejor", "cancelar", "ya no",
]

STREET_PATTERN = re.compile(r"(?:calle|avenida|av\.?|blvd\.?)\s+([^,\n]+)", re.IGNORECASE)
NUMBER_PATTERN = re.compile(r"(?:número|numero|#|num\.?)\s*(\d+)", re.IGNORECASE)
NEIGHBORHOOD_PATTERN = re.compile(r"(?:colonia|col\.?)\s+([^,\n]+)", re.IGNORECASE)
REFERENCES_PATTERN = re.compile(r"(?:referencias?|entre|cerca de|enfrente de)\s+([^,\n]+)", re.IGNORECASE)

ITEM_PATTERNS = [
    re.compile(r"(\d+)\s*(?:media orden|orden|pieza|piezas|pedazo|pedazos)\s+(?:de\s+)?([^,\n]+)"),
    re.compile(r"(?:quiero|pedir|llevar)\s+(?:una|un|dos|tres|cuatro|cinco)?\s*([^,\n]+)"),
    re.compile(r"(\d+)\s*([^,\n]*(?:alitas|hamburguesa|hotdog|bebida|refresco)[^,\n]*)"),
]

ITEM_CONFIDENCE = 0.6


def contains_any(text: str, keywords: List[str]) -> bool:
    return any(keyword in text for keyword in keywords)


class Analyzer(ABC):
    """Turns completion text into intent, step hint, actions and extractions"""

    @abstractmethod
    def classify(self, text: str, current_step: ConversationStep) -> Analysis:
        pass


class KeywordAnalyzer(Analyzer):
    """Keyword membership for intent, regular expressions for extraction.

    Intent categories are tested in the order ordering, address,
    confirmation, modification and each match overwrites the previous one,
    so the last matching category wins. Confidences are fixed per category.
    """

    def classify(self, text: str, current_step: ConversationStep) -> Analysis:
        analysis = Analysis(next_step_hint=current_step)
        if not text:
            return analysis

        lowered = text.lower()

        if contains_any(lowered, ORDERING_KEYWORDS):
            analysis.intent = "ordering"
            analysis.confidence = 0.8
            analysis.next_step_hint = ConversationStep.ORDERING

        if contains_any(lowered, ADDRESS_KEYWORDS):
            analysis.intent = "address_request"
            analysis.confidence = 0.9
            analysis.next_step_hint = ConversationStep.ADDRESS

        if contains_any(lowered, CONFIRMATION_KEYWORDS):
            analysis.intent = "confirmation"
            analysis.confidence = 0.8
            analysis.next_step_hint = ConversationStep.CONFIRMING

        if contains_any(lowered, MODIFICATION_KEYWORDS):
            analysis.intent = "modify_order"
            analysis.confidence = 0.7
            analysis.actions.append("modify_order")

        address = self.extract_address_info(text)
        if address is not None:
            analysis.extracted_data.address = address
            analysis.actions.append("save_address")

        items = self.extract_order_items(text)
        if items:
            analysis.extracted_data.items = items
            analysis.actions.append("add_items")

        logger.debug(
            "Reply classified",
            intent=analysis.intent,
            confidence=analysis.confidence,
            next_step_hint=analysis.next_step_hint.value if analysis.next_step_hint else None,
            actions=analysis.actions,
        )
        return analysis

    def extract_address_info(self, text: str) -> Optional[DeliveryAddress]:
        """Each field is filled independently; None when nothing matched"""
        fields = {}
        for field, pattern in (
            ("street", STREET_PATTERN),
            ("number", NUMBER_PATTERN),
            ("neighborhood", NEIGHBORHOOD_PATTERN),
            ("references", REFERENCES_PATTERN),
        ):
            match = pattern.search(text)
            if match:
                fields[field] = match.group(1).strip()

        if not fields:
            return None
        return DeliveryAddress(**fields)

    def extract_order_items(self, text: str) -> List[ExtractedItem]:
        """Item mentions from every pattern, duplicates included"""
        items = []
        lowered = text.lower()

        for pattern in ITEM_PATTERNS:
            for match in pattern.finditer(lowered):
                groups = match.groups()
                first = groups[0]
                quantity = int(first) if first and first.isdecimal() else 1
                name = (groups[1] if len(groups) > 1 and groups[1] else first or "").strip()

                if len(name) > 2:
                    items.append(
                        ExtractedItem(name=name, quantity=quantity or 1, confidence=ITEM_CONFIDENCE)
                    )

        return items
