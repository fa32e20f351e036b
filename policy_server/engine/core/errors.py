"""Error taxonomy for the policy engine.

All failures raised by the core derive from PolicyServerError so the
transport layer can tell domain errors apart from unexpected ones.
Duplicate definitions are reported (see DuplicateDefinition in the
models package), only resolution of a duplicated notation raises.
"""


class PolicyServerError(Exception):
    """Base class for all policy engine errors."""


class ConfigError(PolicyServerError):
    """Configuration is missing, malformed, or names unusable files."""


class InvalidParamsError(PolicyServerError):
    """Tool parameters are missing, mistyped, or name an unusable file."""


class InvalidNotationError(PolicyServerError):
    """A section notation does not match the grammar."""

    def __init__(self, notation: str, reason: str):
        self.notation = notation
        self.reason = reason
        super().__init__(f"Invalid section notation '{notation}': {reason}")


class InvalidRangeError(InvalidNotationError):
    """A range notation is backwards, cross-depth or cross-parent."""


class UnknownPrefixError(PolicyServerError):
    """No indexed file defines any section for this base prefix."""

    def __init__(self, prefix: str, known_prefixes: list[str]):
        self.prefix = prefix
        self.known_prefixes = known_prefixes
        known = ", ".join(known_prefixes) if known_prefixes else "none"
        super().__init__(f"Unknown prefix: {prefix}. Valid prefixes: {known}")


class SectionNotFoundError(PolicyServerError):
    """A notation is not defined in any file of its group.

    Attributes:
        notation: The dangling notation
        chain: Referencing notations, nearest first. The last entry may be
            a range notation when the miss came from an expanded range.
        from_range: True when the chain ends in a requested range
    """

    def __init__(
        self,
        notation: str,
        files: list[str] | None = None,
        chain: list[str] | None = None,
        from_range: bool = False,
    ):
        self.notation = notation
        self.files = files or []
        self.chain = chain or []
        self.from_range = from_range

        message = f"Section {notation} not found"
        if self.files:
            message += f" in {', '.join(self.files)}"
        if self.chain:
            referrers = self.chain[:-1] if from_range else self.chain
            if referrers:
                message += f" (referenced by {' <- '.join(referrers)})"
            if from_range:
                message += f" (expanded from range {self.chain[-1]})"
        super().__init__(message)


class DuplicateSectionError(PolicyServerError):
    """A requested notation is defined in more than one file."""

    def __init__(self, notation: str, files: list[str]):
        self.notation = notation
        self.files = files
        super().__init__(
            f"Section {notation} found in multiple files: {', '.join(files)}"
        )


class InvalidContinuationTokenError(PolicyServerError):
    """A continuation token is malformed or points past the last chunk."""

    def __init__(self, token: str | None, chunk_count: int, detail: str | None = None):
        self.token = token
        self.chunk_count = chunk_count
        message = f"Invalid continuation token: {token}"
        if detail:
            message += f" ({detail})"
        else:
            message += f" (only {chunk_count} chunks exist)"
        super().__init__(message)
