"""Unit tests for fragment assembly and persistence."""

from __future__ import annotations

from pathlib import Path

import pytest
from lxml import etree

from txttv_fragments._constants import UTF8_BOM
from txttv_fragments.errors import OutputError, SizeLimitError
from txttv_fragments.generator import FragmentAssembler, write_fragment

PAGE = "<!DOCTYPE html><html><head></head><body>101 ]]> & <b>bold</b></body></html>"


def _parse(xml: str) -> etree._Element:
    parser = etree.XMLParser(strip_cdata=False)
    return etree.fromstring(xml.encode("utf-8"), parser)


def test_assemble_wraps_page_in_envelope() -> None:
    fragment = FragmentAssembler().assemble(PAGE, page_number=101)
    root = _parse(fragment.xml)
    assert root.tag == "fragment"
    assert [child.tag for child in root] == ["set-body"]
    assert root[0].text == PAGE
    assert fragment.page_number == 101


def test_assemble_escapes_terminator() -> None:
    fragment = FragmentAssembler().assemble(PAGE)
    assert "101 ]]]]><![CDATA[> & <b>" in fragment.xml


def test_assemble_uses_configured_tags() -> None:
    assembler = FragmentAssembler(root_tag="policy", body_tag="body-content")
    root = _parse(assembler.assemble(PAGE).xml)
    assert root.tag == "policy"
    assert root[0].tag == "body-content"


def test_byte_size_counts_bom_and_utf8() -> None:
    fragment = FragmentAssembler().assemble("<p>é</p>")
    assert fragment.byte_size == len(fragment.to_bytes())
    assert fragment.to_bytes().startswith(UTF8_BOM)
    assert not fragment.xml.startswith("\ufeff")


def test_fragment_exactly_at_limit_is_accepted() -> None:
    size = FragmentAssembler().assemble(PAGE).byte_size
    fragment = FragmentAssembler(max_bytes=size).assemble(PAGE)
    assert fragment.byte_size == size


def test_fragment_over_limit_is_rejected() -> None:
    size = FragmentAssembler().assemble(PAGE).byte_size
    with pytest.raises(SizeLimitError) as excinfo:
        FragmentAssembler(max_bytes=size - 1).assemble(PAGE)
    assert excinfo.value.actual == size
    assert excinfo.value.limit == size - 1


def test_size_is_checked_after_escaping() -> None:
    html = "]]>" * 100
    unescaped_size = len(FragmentAssembler().assemble("x" * 300).to_bytes())
    with pytest.raises(SizeLimitError):
        FragmentAssembler(max_bytes=unescaped_size).assemble(html)


def test_default_ceiling_is_256_kib() -> None:
    with pytest.raises(SizeLimitError) as excinfo:
        FragmentAssembler().assemble("x" * (256 * 1024))
    assert excinfo.value.limit == 262144


def test_assembly_is_deterministic() -> None:
    first = FragmentAssembler().assemble(PAGE).to_bytes()
    second = FragmentAssembler().assemble(PAGE).to_bytes()
    assert first == second


def test_write_fragment_persists_bom_prefixed_bytes(tmp_path: Path) -> None:
    fragment = FragmentAssembler().assemble(PAGE)
    path = write_fragment(fragment, tmp_path / "page-101.xml")
    data = path.read_bytes()
    assert data.startswith(UTF8_BOM)
    assert data == fragment.to_bytes()
    assert [p.name for p in tmp_path.iterdir()] == ["page-101.xml"]


def test_write_fragment_replaces_existing_file(tmp_path: Path) -> None:
    path = tmp_path / "page-101.xml"
    path.write_text("old", encoding="utf-8")
    fragment = FragmentAssembler().assemble(PAGE)
    write_fragment(fragment, path)
    assert path.read_bytes() == fragment.to_bytes()


def test_write_fragment_reports_missing_directory(tmp_path: Path) -> None:
    fragment = FragmentAssembler().assemble(PAGE)
    target = tmp_path / "missing" / "page-101.xml"
    with pytest.raises(OutputError) as excinfo:
        write_fragment(fragment, target)
    assert excinfo.value.path == target
    assert not target.exists()
