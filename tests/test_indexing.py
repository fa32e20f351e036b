"""Tests for the section index builder."""

import logging
import os

import pytest

from policy_server.engine.indexing import builder
from policy_server.engine.indexing.builder import build_section_index, validate_index
from policy_server.engine.core.document import SectionIndex


class TestBuildSectionIndex:
    def test_sample_index(self, sample_index: SectionIndex) -> None:
        assert sample_index.file_count == 4
        assert sample_index.duplicates == {}
        assert sample_index.display_path(sample_index.section_map["§APP.7"]) == (
            "sample-policies/policy-app.md"
        )
        assert "§APP-HOOK.1" in sample_index.section_map
        assert sample_index.section_count == len(sample_index.section_map)

    def test_code_block_headers_not_indexed(self, sample_index: SectionIndex) -> None:
        assert "§APP.99" not in sample_index.section_map

    def test_files_for_prefix_uses_base_prefix(self, sample_index: SectionIndex) -> None:
        group = [sample_index.display_path(f) for f in sample_index.files_for_prefix("APP")]
        assert group == ["sample-policies/policy-app-hooks.md", "sample-policies/policy-app.md"]
        assert sample_index.files_for_prefix("NOPE") == []

    def test_known_prefixes(self, sample_index: SectionIndex) -> None:
        assert sample_index.known_prefixes() == ["APP", "META", "SYS"]

    def test_duplicates_excluded_from_map(self, make_config, caplog) -> None:
        config = make_config(
            {
                "a.md": "## {§DUP.1} In A\n\nA\n\n## {§DUP.2} Only A\n",
                "b.md": "## {§DUP.1} In B\n\nB\n",
            }
        )
        with caplog.at_level(logging.WARNING):
            index = build_section_index(config)

        assert "§DUP.1" not in index.section_map
        assert [os.path.basename(f) for f in index.duplicates["§DUP.1"]] == ["a.md", "b.md"]
        assert "§DUP.2" in index.section_map
        assert "Duplicate section §DUP.1" in caplog.text

    def test_same_file_repeat_is_warning_only(self, make_config, caplog) -> None:
        config = make_config({"a.md": "## {§R.1} One\n\n## {§R.1} Two\n"})
        with caplog.at_level(logging.WARNING):
            index = build_section_index(config)

        assert "§R.1" in index.section_map
        assert index.duplicates == {}
        assert "appears 2 times" in caplog.text

    def test_missing_file_skipped(self, make_config, tmp_path, caplog) -> None:
        config = make_config({"a.md": "## {§A.1} One\n"})
        config.files.append(str(tmp_path / "gone.md"))

        with caplog.at_level(logging.WARNING):
            index = build_section_index(config)

        assert index.section_map.keys() == {"§A.1"}
        assert index.stats.errors == 1
        assert index.file_count == 2
        assert str(tmp_path / "gone.md") not in index.files
        assert "gone.md" in caplog.text

    def test_undecodable_file_skipped(self, make_config, tmp_path) -> None:
        config = make_config({"a.md": "## {§A.1} One\n"})
        bad = tmp_path / "bad.md"
        bad.write_bytes(b"## {\xa7B.1} latin-1\n\xff\xfe")
        config.files.append(str(bad))

        index = build_section_index(config)

        assert index.section_map.keys() == {"§A.1"}
        assert index.stats.errors == 1


class TestIncrementalRebuild:
    def test_unchanged_files_are_not_read(self, sample_config, monkeypatch) -> None:
        first = build_section_index(sample_config)

        def fail_read(file_path: str) -> str:
            raise AssertionError(f"unexpected read of {file_path}")

        monkeypatch.setattr(builder, "read_policy_file", fail_read)
        second = build_section_index(sample_config, first)

        assert second.section_map == first.section_map
        assert second.file_sections == first.file_sections
        assert second.duplicates == first.duplicates
        assert second.stats.skipped == 4
        assert second.stats.reparsed == 0

    def test_changed_file_is_reparsed(self, make_config, tmp_path) -> None:
        config = make_config({"a.md": "## {§A.1} One\n", "b.md": "## {§B.1} One\n"})
        first = build_section_index(config)

        path = tmp_path / "a.md"
        path.write_text("## {§A.1} One\n\n## {§A.2} Two\n", encoding="utf-8")
        st = os.stat(path)
        os.utime(path, ns=(st.st_atime_ns, first.file_mtimes[str(path)] + 1_000_000))

        second = build_section_index(config, first)

        assert "§A.2" in second.section_map
        assert second.stats.changed == 1
        assert second.stats.unchanged == 1
        assert second.stats.reparsed == 1

    def test_size_change_alone_forces_reread(self, make_config, tmp_path) -> None:
        config = make_config({"a.md": "## {§A.1} One\n"})
        first = build_section_index(config)
        path = tmp_path / "a.md"
        mtime = first.file_mtimes[str(path)]

        path.write_text("## {§A.1} One\n## {§A.2} Two\n", encoding="utf-8")
        os.utime(path, ns=(mtime, mtime))

        second = build_section_index(config, first)
        assert "§A.2" in second.section_map

    def test_previous_index_not_mutated(self, make_config, tmp_path) -> None:
        config = make_config({"a.md": "## {§A.1} One\n"})
        first = build_section_index(config)
        (tmp_path / "a.md").write_text("## {§A.9} Nine\n", encoding="utf-8")
        os.utime(tmp_path / "a.md", ns=(0, first.file_mtimes[config.files[0]] + 1_000_000))

        build_section_index(config, first)
        assert "§A.1" in first.section_map


class TestValidateIndex:
    def test_moves_duplicates(self) -> None:
        index = SectionIndex(section_map={"§A.1": "/x.md", "§A.2": "/x.md"})
        validate_index(index, {"/x.md": ["§A.1", "§A.2"], "/y.md": ["§A.1"]})

        assert index.section_map == {"§A.2": "/x.md"}
        assert index.duplicates == {"§A.1": ["/x.md", "/y.md"]}
        assert index.section_count == 1

    @pytest.mark.parametrize("notations", [[], ["§A.1"]])
    def test_no_duplicates(self, notations: list[str]) -> None:
        index = SectionIndex(section_map={n: "/x.md" for n in notations})
        validate_index(index, {"/x.md": notations})
        assert index.duplicates == {}
