"""Tests for storefront_sync/extraction/parsers/script_json.py"""

import pytest
from bs4 import BeautifulSoup

from storefront_sync.errors import ParseError
from storefront_sync.extraction.parsers.script_json import ScriptJSONParser, decode_json_block


def soup_with_scripts(*scripts: str, script_type: str = "application/json") -> BeautifulSoup:
    body = "".join(f'<script type="{script_type}">{s}</script>' for s in scripts)
    return BeautifulSoup(f"<html><body>{body}</body></html>", "lxml")


@pytest.fixture
def parser():
    return ScriptJSONParser(max_depth=12)


class TestParse:
    def test_decodes_blocks_in_order(self, parser):
        soup = soup_with_scripts('{"a": 1}', '[1, 2]')
        assert parser.parse(soup) == [{"a": 1}, [1, 2]]

    def test_skips_malformed(self, parser):
        soup = soup_with_scripts('{not: json}', '{"ok": true}')
        assert parser.parse(soup) == [{"ok": True}]

    def test_malformed_block_is_logged(self, parser, caplog):
        soup = soup_with_scripts('{not: json}')
        with caplog.at_level("WARNING", logger="storefront_sync.extraction.parsers.script_json"):
            assert parser.parse(soup) == []
        assert "Skipping JSON script block" in caplog.text

    def test_ignores_javascript(self, parser):
        soup = soup_with_scripts('var x = {"title": "A", "price": 1};', script_type="text/javascript")
        assert parser.parse(soup) == []


class TestDecodeJsonBlock:
    def test_valid(self):
        assert decode_json_block('{"a": [1]}') == {"a": [1]}

    def test_malformed_raises_parse_error(self):
        with pytest.raises(ParseError, match="line 1"):
            decode_json_block("{not: json}")


class TestIsProductShaped:
    def test_name_and_price(self, parser):
        assert parser.is_product_shaped({"title": "Bol", "price": 12})

    def test_name_only(self, parser):
        assert not parser.is_product_shaped({"title": "Bol"})

    def test_blank_name(self, parser):
        assert not parser.is_product_shaped({"title": "   ", "price": 1500})

    def test_non_product_type(self, parser):
        assert not parser.is_product_shaped({"@type": "Organization", "name": "Corp", "offers": {"price": 1}})


class TestFindProducts:
    def test_explicit_product_key(self, parser):
        blocks = [{"product": {"title": "Bol", "price": 12}, "other": {"title": "X", "price": 1}}]
        assert [p["title"] for p in parser.find_products(blocks)] == ["Bol"]

    def test_products_list(self, parser):
        blocks = [{"products": [{"name": "A", "price": 1}, {"name": "B", "price": 2}, "junk"]}]
        assert [p["name"] for p in parser.find_products(blocks)] == ["A", "B"]

    def test_nested_walk(self, parser):
        blocks = [{"state": {"catalog": {"items": [{"name": "Tasse", "price": "9,00"}]}}}]
        assert [p["name"] for p in parser.find_products(blocks)] == ["Tasse"]

    def test_variants_not_treated_as_products(self, parser):
        blocks = [{"data": {"title": "Robe", "price": 4990, "variants": [{"title": "S", "price": 4990}]}}]
        found = parser.find_products(blocks)
        assert len(found) == 1
        assert found[0]["title"] == "Robe"

    def test_depth_bound(self):
        shallow = ScriptJSONParser(max_depth=1)
        blocks = [{"a": {"b": {"name": "Deep", "price": 1}}}]
        assert shallow.find_products(blocks) == []

    def test_cycle_terminates(self, parser):
        node = {"children": []}
        node["children"].append(node)
        assert parser.find_products([node]) == []
