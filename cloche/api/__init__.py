"""
API package initialization
"""

# Import all routers to make them available
from . import auth, boutiques, users, messages, products, leads

__all__ = ["auth", "boutiques", "users", "messages", "products", "leads"]
