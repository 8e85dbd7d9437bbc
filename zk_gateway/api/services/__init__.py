"""Service layer between routers and the executor / job subsystem."""
from .tool_service import ToolService

__all__ = ["ToolService"]
