"""Policy engine: notation grammar, indexing, resolution, chunking and tool handlers."""
