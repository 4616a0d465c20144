from typing import Dict, Iterable, Mapping, Optional, Tuple
from types import MappingProxyType

from app.ai_feature.tools import Tool, ToolDescriptor, build_tools
from app.core.data_access import DataAccess


class ToolRegistry:
    """
    Name -> tool lookup, fixed at construction.

    Built once at startup and only read afterwards, so concurrent chat runs
    share one instance without locking.
    """

    def __init__(self, tools: Iterable[Tool]):
        by_name: Dict[str, Tool] = {}
        for tool in tools:
            if not tool.name:
                raise ValueError("Tool name must be non-empty")
            if tool.name in by_name:
                raise ValueError(f"Duplicate tool name: {tool.name}")
            by_name[tool.name] = tool

        self._tools: Mapping[str, Tool] = MappingProxyType(by_name)
        self._descriptors: Tuple[ToolDescriptor, ...] = tuple(
            tool.descriptor for tool in by_name.values()
        )

    def list_tools(self) -> Tuple[ToolDescriptor, ...]:
        """Descriptors in registration order."""
        return self._descriptors

    def resolve(self, name: str) -> Optional[Tool]:
        """The tool registered under `name`, or None."""
        return self._tools.get(name)

    def __contains__(self, name: str) -> bool:
        return name in self._tools

    def __len__(self) -> int:
        return len(self._tools)


def build_registry(data_access: DataAccess) -> ToolRegistry:
    return ToolRegistry(build_tools(data_access))
