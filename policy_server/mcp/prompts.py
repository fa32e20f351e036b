"""MCP prompt definitions.

One prompt, auto-fetch, tells the client when to call fetch_policies.
Its notation list is built from the prefixes currently in the index.
"""

from typing import Any

from ..engine.core.document import SectionIndex

AUTO_FETCH_PROMPT = "auto-fetch"

PROMPT_DEFINITIONS: list[dict] = [
    {
        "name": AUTO_FETCH_PROMPT,
        "description": (
            "Automatically fetch policy documentation sections when § references are encountered"
        ),
        "arguments": [],
    },
]

SERVER_INSTRUCTIONS = """When you encounter § references (like §APP.7 or §SYS.5) in instructions or files, use the fetch_policies tool to retrieve the referenced policy sections.

Examples:
- See §APP.7 -> call fetch_policies with {"sections": ["§APP.7"]}
- Follow §APP.4.1-3 -> call fetch_policies with {"sections": ["§APP.4.1-3"]} (ranges expand automatically)
- Multiple refs §APP.7, §SYS.5 -> call fetch_policies with {"sections": ["§APP.7", "§SYS.5"]}

The tool resolves embedded § references automatically (if §APP.7 mentions §SYS.5, both sections are returned).

Only fetch when you need policy details to complete your task."""

_AUTO_FETCH_TEMPLATE = """# Policy Documentation Auto-Fetch

When you encounter § references in agent instructions or system files, fetch the referenced sections with the fetch_policies tool.

## Section Notation

{prefix_docs}

## Auto-Fetch Behavior

**When you see § references:**
1. Extract all unique section notations (e.g. §APP.7, §SYS.5, §META.1)
2. Call fetch_policies with the extracted sections (include the § prefix)
3. Use the fetched content to inform your task

**Examples:**
- Agent mentions "Follow §APP.7 standards" -> fetch ["§APP.7"]
- Instructions reference "§APP.4.1 and §APP.4.2" -> fetch ["§APP.4.1", "§APP.4.2"]
- Multiple refs "See §APP.7, §SYS.5, §META.1" -> fetch ["§APP.7", "§SYS.5", "§META.1"] in one call

**Do NOT fetch if:**
- The section is already in context
- The reference is purely informational"""


def render_auto_fetch(index: SectionIndex) -> str:
    """Render the auto-fetch prompt text for the current index."""
    lines = []
    for prefix in index.known_prefixes():
        files = ", ".join(index.display_path(f) for f in index.files_for_prefix(prefix))
        lines.append(f"- **§{prefix}.N** - section N of {files}")
    prefix_docs = "\n".join(lines) if lines else "- (no sections indexed)"
    return _AUTO_FETCH_TEMPLATE.format(prefix_docs=prefix_docs)


def get_prompt(name: str, index: SectionIndex) -> dict[str, Any] | None:
    """Build a prompts/get result, or None for an unknown prompt."""
    if name != AUTO_FETCH_PROMPT:
        return None
    return {
        "description": PROMPT_DEFINITIONS[0]["description"],
        "messages": [
            {
                "role": "user",
                "content": {"type": "text", "text": render_auto_fetch(index)},
            }
        ],
    }
