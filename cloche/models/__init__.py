"""
Model package initialization
"""

from .boutique import Boutique, PlanTier
from .user import User
from .showcase import BoutiqueShowcase
from .product import Product, ProductImage
from .lead import Lead
from .conversation import Conversation, Message, ConversationStatus, SenderType

__all__ = [
    # Core models
    "Boutique",
    "User",
    "BoutiqueShowcase",
    "Product",
    "ProductImage",
    "Lead",
    "Conversation",
    "Message",

    # Enums
    "PlanTier",
    "ConversationStatus",
    "SenderType",
]
