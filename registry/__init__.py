from .defaults import ACTIONS, OPERATORS, TRIGGERS, create_default_registries
from .registry import Registry, RegistryItem

__all__ = ["ACTIONS", "OPERATORS", "TRIGGERS", "Registry", "RegistryItem", "create_default_registries"]
