"""Base infrastructure for tool handlers.

This module provides the common types and utilities used by all handler modules.
Each handler receives a HandlerContext with shared state and returns a ToolResult.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Coroutine, TypeVar

from pydantic import BaseModel, ValidationError

from ..core.errors import InvalidParamsError
from ..core.tokens import estimate_tokens

if TYPE_CHECKING:
    from ...config import DocumentSetConfig
    from ...models import ToolResult
    from ..core.document import SectionIndex
    from ..indexing.state import IndexState

ParamsT = TypeVar("ParamsT", bound=BaseModel)


@dataclass
class HandlerContext:
    """Context object passed to all handlers.

    Holds the document set and its index state. Handlers never keep their
    own copy of the index; they ask for a fresh one per call.
    """

    config: "DocumentSetConfig"
    state: "IndexState"

    def fresh_index(self) -> "SectionIndex":
        """Current index, rebuilt first if files changed since the last build."""
        return self.state.ensure_fresh(self.config)


# Type alias for handler functions
HandlerFunc = Callable[
    [dict[str, Any], HandlerContext],
    Coroutine[Any, Any, "ToolResult"],
]


def count_tokens(text: str) -> int:
    """Estimate token count for a string (~4 characters per token)."""
    return estimate_tokens(text)


def parse_params(model: type[ParamsT], params: dict[str, Any], tool: str) -> ParamsT:
    """Validate raw tool params against a Params model.

    Raises:
        InvalidParamsError: With one line per failing field
    """
    try:
        return model.model_validate(params or {})
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(p) for p in err['loc']) or 'params'}: {err['msg']}"
            for err in e.errors()
        )
        raise InvalidParamsError(f"{tool}: {problems}") from e
