"""Tests for reply classification and extraction"""

from orderchat.constants import ConversationStep
from orderchat.conversation.analyzer import KeywordAnalyzer


analyzer = KeywordAnalyzer()


def test_ordering_reply_extracts_items():
    """Quantity and name are taken from the reply"""
    analysis = analyzer.classify("Listo: 2 alitas bbq en tu carrito", ConversationStep.GREETING)

    assert analysis.intent == "ordering"
    assert analysis.confidence == 0.8
    assert analysis.next_step_hint == ConversationStep.ORDERING
    assert analysis.actions == ["add_items"]

    item = analysis.extracted_data.items[0]
    assert item.name == "alitas bbq en tu carrito"
    assert item.quantity == 2
    assert item.confidence == 0.6


def test_address_reply_extracts_fields():
    analysis = analyzer.classify(
        "Anotado: calle Reforma, numero 123, colonia Centro",
        ConversationStep.ORDERING,
    )

    assert analysis.intent == "address_request"
    assert analysis.confidence == 0.9
    assert analysis.next_step_hint == ConversationStep.ADDRESS
    assert analysis.actions == ["save_address"]

    address = analysis.extracted_data.address
    assert address.street == "Reforma"
    assert address.number == "123"
    assert address.neighborhood == "Centro"
    assert address.references is None


def test_address_references():
    address = analyzer.extract_address_info("Es en avenida Juárez, referencias casa azul")

    assert address.street == "Juárez"
    assert address.references == "casa azul"
    assert not address.is_complete


def test_confirmation_reply():
    analysis = analyzer.classify(
        "Perfecto, tu pedido está listo para confirmar. Total $308",
        ConversationStep.ADDRESS,
    )

    assert analysis.intent == "confirmation"
    assert analysis.next_step_hint == ConversationStep.CONFIRMING
    assert analysis.actions == []


def test_modification_reply():
    analysis = analyzer.classify("Claro, voy a quitar eso de tu pedido", ConversationStep.CONFIRMING)

    assert analysis.intent == "modify_order"
    assert analysis.confidence == 0.7
    assert analysis.actions == ["modify_order"]
    # Modification carries no step of its own
    assert analysis.next_step_hint == ConversationStep.CONFIRMING


def test_last_matching_category_wins():
    """Confirmation is checked after address, so it overrides it"""
    analysis = analyzer.classify("Perfecto, ¿a qué dirección lo enviamos?", ConversationStep.ORDERING)

    assert analysis.intent == "confirmation"
    assert analysis.confidence == 0.8
    assert analysis.next_step_hint == ConversationStep.CONFIRMING


def test_chat_reply_keeps_current_step():
    analysis = analyzer.classify("¡Hola! ¿Cómo estás?", ConversationStep.ADDRESS)

    assert analysis.intent == "chat"
    assert analysis.confidence == 0.5
    assert analysis.next_step_hint == ConversationStep.ADDRESS
    assert analysis.actions == []


def test_empty_reply():
    analysis = analyzer.classify("", ConversationStep.GREETING)

    assert analysis.intent == "chat"
    assert analysis.actions == []


def test_action_order():
    """modify_order, then save_address, then add_items"""
    analysis = analyzer.classify(
        "Mejor te mando 2 hamburguesas a la calle Reforma",
        ConversationStep.ORDERING,
    )

    assert analysis.actions == ["modify_order", "save_address", "add_items"]


def test_item_patterns():
    items = analyzer.extract_order_items("3 piezas de boneless, quiero una limonada")

    names = [(item.name, item.quantity) for item in items]
    assert ("boneless", 3) in names
    assert ("limonada", 1) in names


def test_short_names_are_ignored():
    assert analyzer.extract_order_items("quiero un té") == []


def test_non_decimal_digits_default_quantity_to_one():
    """Superscripts count as digits for str.isdigit but not as quantities"""
    assert analyzer.extract_order_items("Claro, quiero ²") == []

    items = analyzer.extract_order_items("quiero ³ alitas")
    assert [(item.name, item.quantity) for item in items] == [("³ alitas", 1)]
