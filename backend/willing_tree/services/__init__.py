"""Services that run workflow actions against storage."""

from willing_tree.services.capability_gate import CapabilityGate
from willing_tree.services.entity_store import EntityStore, SqlEntityStore
from willing_tree.services.innermosts import InnermostService
from willing_tree.services.weekly_cycle import WeeklyCycleService

__all__ = ["CapabilityGate", "EntityStore", "SqlEntityStore", "InnermostService", "WeeklyCycleService"]
