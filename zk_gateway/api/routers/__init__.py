"""Route modules imported by the app factory."""
from __future__ import annotations

import importlib
from typing import List

from fastapi import APIRouter

# Module paths that provide a ``router`` attribute.
_ROUTER_MODULES = [
    "zk_gateway.api.routers.system_health",
    "zk_gateway.api.routers.tools",
    "zk_gateway.api.routers.jobs",
    "zk_gateway.api.routers.events",
    "zk_gateway.api.routers.logs",
]


def all_routers() -> List[APIRouter]:
    """Import and return every route module's router."""
    return [importlib.import_module(mod_path).router for mod_path in _ROUTER_MODULES]
