"""Downstream discovery: what a Flux resource applied to the cluster."""

from fluxscope.inventory.decoder import extract_inventory, extract_upstream, group_inventory, parse_inventory_id
from fluxscope.inventory.helm_storage import decode_release_inventory
from fluxscope.inventory.models import InventoryEntry, InventoryGroups

__all__ = [
    "InventoryEntry",
    "InventoryGroups",
    "decode_release_inventory",
    "extract_inventory",
    "extract_upstream",
    "group_inventory",
    "parse_inventory_id",
]
