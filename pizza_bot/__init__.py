"""
Pizza Bot: conversational pizza ordering against a remote commerce API.

Orders are validated locally, then validated, priced and placed remotely
by services.order_manager.OrderManager.
"""

__version__ = "0.1.0"
