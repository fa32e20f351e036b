"""Shared fixtures for policy server tests."""

from collections.abc import Callable, Iterator
from pathlib import Path

import pytest

from policy_server.config import DocumentSetConfig, load_config
from policy_server.engine.indexing.builder import build_section_index
from policy_server.engine.core.document import SectionIndex
from policy_server.policy_engine import PolicyEngine

FIXTURES_DIR = Path(__file__).parent / "fixtures"
SAMPLE_POLICIES_DIR = FIXTURES_DIR / "sample-policies"


@pytest.fixture
def sample_config() -> DocumentSetConfig:
    return load_config(str(FIXTURES_DIR / "policies.json"))


@pytest.fixture
def sample_index(sample_config: DocumentSetConfig) -> SectionIndex:
    return build_section_index(sample_config)


@pytest.fixture
def make_config(tmp_path: Path) -> Callable[..., DocumentSetConfig]:
    """Write Markdown files into tmp_path and return a config for them.

    Files are configured in the order given.
    """

    def _make(files: dict[str, str], max_chunk_tokens: int = 10000) -> DocumentSetConfig:
        paths = []
        for name, content in files.items():
            path = tmp_path / name
            path.write_text(content, encoding="utf-8")
            paths.append(str(path))
        return DocumentSetConfig(
            files=paths, base_dir=str(tmp_path), max_chunk_tokens=max_chunk_tokens
        )

    return _make


@pytest.fixture
def sample_engine(sample_config: DocumentSetConfig) -> Iterator[PolicyEngine]:
    engine = PolicyEngine.create(sample_config, watch=False)
    yield engine
    engine.close()
