"""Policy engine facade.

Owns the document set config and the index state, and dispatches tool
calls to the handlers in engine.handlers. Both transports (HTTP and
stdio) talk to the engine only through execute().
"""

import logging
from typing import Any

from .config import DocumentSetConfig
from .engine.core.errors import InvalidParamsError
from .engine.handlers import (
    HandlerContext,
    HandlerFunc,
    handle_extract_references,
    handle_fetch,
    handle_list_indexed,
    handle_list_sources,
    handle_reindex,
    handle_resolve_references,
    handle_validate_references,
)
from .engine.indexing.state import IndexState, close_index_state, initialize_index_state
from .models import ToolName, ToolResult

logger = logging.getLogger(__name__)


class PolicyEngine:
    """Dispatches tool calls against one document set.

    Usage:
        engine = PolicyEngine.create(config)
        result = await engine.execute(ToolName.FETCH_POLICIES, {"sections": ["§APP.7"]})
        engine.close()
    """

    def __init__(self, config: DocumentSetConfig, state: IndexState):
        self.config = config
        self.state = state
        self._handlers: dict[ToolName, HandlerFunc] = {
            ToolName.FETCH_POLICIES: handle_fetch,
            ToolName.RESOLVE_REFERENCES: handle_resolve_references,
            ToolName.EXTRACT_REFERENCES: handle_extract_references,
            ToolName.VALIDATE_REFERENCES: handle_validate_references,
            ToolName.LIST_SOURCES: handle_list_sources,
            ToolName.LIST_SECTIONS: handle_list_indexed,
            ToolName.REINDEX: handle_reindex,
        }

    @classmethod
    def create(
        cls,
        config: DocumentSetConfig,
        debounce_ms: int = 300,
        watch: bool = True,
    ) -> "PolicyEngine":
        """Build the initial index and start watching the configured files."""
        state = initialize_index_state(config, debounce_ms=debounce_ms, watch=watch)
        index = state.index
        logger.info(
            f"Policy engine ready: {index.file_count} files, {index.section_count} sections, "
            f"{len(index.duplicates)} duplicates"
        )
        if index.duplicates:
            logger.warning(
                f"Duplicate sections will fail to resolve: {', '.join(sorted(index.duplicates))}"
            )
        return cls(config, state)

    def _get_context(self) -> HandlerContext:
        return HandlerContext(config=self.config, state=self.state)

    async def execute(self, tool: ToolName | str, params: dict[str, Any] | None = None) -> ToolResult:
        """Run one tool.

        Raises:
            InvalidParamsError: Unknown tool name or bad params
            PolicyServerError: Domain failures from the handler
        """
        try:
            tool_name = ToolName(tool)
        except ValueError as e:
            raise InvalidParamsError(f"Unknown tool: {tool}") from e

        handler = self._handlers[tool_name]
        logger.debug(f"Executing {tool_name} with {params}")
        return await handler(params or {}, self._get_context())

    def close(self) -> None:
        """Stop file watching. Safe to call more than once."""
        close_index_state(self.state)
