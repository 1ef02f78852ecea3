"""Conversation state engine"""

from orderchat.conversation.store import ConversationStore
from orderchat.conversation.analyzer import Analyzer, KeywordAnalyzer
from orderchat.conversation.context_builder import build_context
from orderchat.conversation.mutator import OrderMutator
from orderchat.conversation.lifecycle import LifecycleManager

__all__ = [
    "ConversationStore",
    "Analyzer",
    "KeywordAnalyzer",
    "build_context",
    "OrderMutator",
    "LifecycleManager",
]
