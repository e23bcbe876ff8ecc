"""Resolution core: budget, session cache and the resolver."""

from loadout.resolver.budget import BudgetTracker
from loadout.resolver.cache import SessionCache
from loadout.resolver.resolver import Resolver

__all__ = ["BudgetTracker", "Resolver", "SessionCache"]
