"""Tests for storefront_sync/extraction/fields.py"""

from decimal import Decimal

import pytest
from bs4 import BeautifulSoup

from storefront_sync.common.constants import COLOR_KEYWORDS, SIZE_KEYWORDS
from storefront_sync.extraction import fields


def make_element(html: str):
    """Parse an HTML fragment and return its first element."""
    soup = BeautifulSoup(html, "lxml")
    return soup.body.find(True)


class TestParsePrice:
    @pytest.mark.parametrize("text, expected", [
        ("12,99 €", Decimal("12.99")),
        ("€12.99", Decimal("12.99")),
        ("$1,200.00", Decimal("1200.00")),
        ("1.234,56 €", Decimal("1234.56")),
        ("49,90\u00a0€", Decimal("49.90")),
        ("1 234,56 €", Decimal("1234.56")),
        ("1\u202f234,56 €", Decimal("1234.56")),
    ])
    def test_parses(self, text, expected):
        assert fields.parse_price(text) == expected

    @pytest.mark.parametrize("text", ["", None, "0,00 €", "Prix sur demande"])
    def test_absent_is_none_not_zero(self, text):
        assert fields.parse_price(text) is None

    def test_decimal_separator_override(self):
        assert fields.parse_price("1.234", decimal_separator=",") == Decimal("1234")


class TestToDecimal:
    def test_number(self):
        assert fields.to_decimal(19.9) == Decimal("19.9")

    def test_string(self):
        assert fields.to_decimal("19.90") == Decimal("19.90")

    def test_zero_and_bool(self):
        assert fields.to_decimal(0) is None
        assert fields.to_decimal(True) is None

    @pytest.mark.parametrize("value", [float("nan"), float("inf"), float("-inf"), Decimal("NaN"), Decimal("Infinity")])
    def test_non_finite_is_none(self, value):
        assert fields.to_decimal(value) is None


class TestExtractPrice:
    def test_selector_wins(self):
        card = make_element('<div><span class="price">35,50 €</span><p>Livraison 4,90 €</p></div>')
        assert fields.extract_price(card, [".price"]) == Decimal("35.50")

    def test_sale_price_in_ins(self):
        card = make_element('<div><span class="price"><del>45,00 €</del> <ins>39,00 €</ins></span></div>')
        assert fields.extract_price(card, [".price"]) == Decimal("39.00")

    def test_data_price_attribute(self):
        card = make_element('<div data-price="24.00"><span>Vase</span></div>')
        assert fields.extract_price(card, [".price"]) == Decimal("24.00")

    def test_raw_text_scan(self):
        card = make_element('<div><p>Vase Grès</p><p>Seulement 35,50 € aujourd\'hui</p></div>')
        assert fields.extract_price(card, [".price"]) == Decimal("35.50")

    def test_no_price(self):
        card = make_element('<div><p>Bougie Figue</p><p>Bientôt disponible</p></div>')
        assert fields.extract_price(card, [".price"]) is None


class TestCleanName:
    def test_strips_price_and_reference_code(self):
        assert fields.clean_name("Robe Lin 24SS0113 - 49,90 €") == "Robe Lin"

    def test_strips_punctuation(self):
        assert fields.clean_name("- Vase Grès -") == "Vase Grès"

    @pytest.mark.parametrize("name", ["IMG_1234", "DSC_0001", "P123", "123.jpg"])
    def test_image_filenames_rejected(self, name):
        assert fields.clean_name(name) == ""

    def test_truncated(self):
        assert len(fields.clean_name("Lampe " * 40, max_length=100)) <= 100

    def test_keeps_short_numbers(self):
        assert fields.clean_name("Bougie 250g") == "Bougie 250g"


class TestExtractName:
    def test_selector(self):
        card = make_element('<div><h3 class="title">Vase Grès</h3></div>')
        assert fields.extract_name(card, [".title"]) == "Vase Grès"

    def test_image_alt_fallback(self):
        card = make_element('<div><img src="/v.jpg" alt="Vase Grès"><span>35 €</span></div>')
        assert fields.extract_name(card, [".title"]) == "Vase Grès"

    def test_first_line_fallback(self):
        card = make_element('<div><p>Vase Grès</p><p>35 €</p></div>')
        assert fields.extract_name(card, [".title"]) == "Vase Grès"

    def test_price_only_card_has_no_name(self):
        card = make_element('<div><span>12,00 €</span></div>')
        assert fields.extract_name(card, [".title"]) == ""


class TestImages:
    @pytest.mark.parametrize("url", [
        "data:image/gif;base64,R0lGOD",
        "/img/placeholder.png",
        "/img/blank.gif",
        "/assets/spacer.gif",
        "/img/no-image.jpg",
        "/img/loading.svg",
    ])
    def test_placeholders(self, url):
        assert fields.is_placeholder_image(url)

    def test_real_image(self):
        assert not fields.is_placeholder_image("https://shop.example.com/img/robe.jpg")

    def test_protocol_relative(self):
        assert fields.normalize_image_url("//cdn.example.com/robe.jpg") == "https://cdn.example.com/robe.jpg"

    def test_relative_resolved(self):
        url = fields.normalize_image_url("/img/robe.jpg", "https://shop.example.com/collections/all")
        assert url == "https://shop.example.com/img/robe.jpg"

    def test_width_template(self):
        url = fields.normalize_image_url("//cdn.example.com/robe_{width}x.jpg")
        assert url == "https://cdn.example.com/robe_1024x.jpg"

    def test_lazy_attributes(self):
        img = make_element('<img src="/img/spacer.gif" data-src="/img/robe.jpg">')
        assert fields.image_url_from_tag(img, "https://shop.example.com/") == "https://shop.example.com/img/robe.jpg"

    def test_srcset_first_candidate(self):
        img = make_element('<img srcset="/a-400.jpg 400w, /a-800.jpg 800w">')
        assert fields.image_url_from_tag(img, "https://shop.example.com/") == "https://shop.example.com/a-400.jpg"

    def test_extract_images_deduplicates(self):
        gallery = make_element(
            '<div><img src="/a.jpg"><img src="/a.jpg"><img src="data:image/png;base64,x"><img data-zoom-image="/b.jpg"></div>'
        )
        urls = fields.extract_images(gallery, ["img"], "https://shop.example.com/")
        assert urls == ["https://shop.example.com/a.jpg", "https://shop.example.com/b.jpg"]


class TestOptions:
    @pytest.mark.parametrize("value", ["", "Choose an option", "Choisir une option", "--", "Default Title", "x" * 40])
    def test_rejected(self, value):
        assert not fields.is_acceptable_option(value)

    @pytest.mark.parametrize("value", ["Rouge", "XL", "Bleu ciel"])
    def test_accepted(self, value):
        assert fields.is_acceptable_option(value)

    def test_swatch_title_and_data_attribute(self):
        html = (
            '<div><ul class="color-swatches">'
            '<li class="color-swatch" title="Rouge"></li>'
            '<li class="color-swatch" data-value="Bleu"></li>'
            '<li class="color-swatch" title="Rouge"></li>'
            '</ul></div>'
        )
        colors = fields.extract_option_values(make_element(html), ["[class*='color-swatch']"], COLOR_KEYWORDS)
        assert colors == ["Rouge", "Bleu"]

    def test_labeled_select(self):
        html = (
            '<div><label for="taille">Taille</label>'
            '<select id="taille" name="attribute_taille">'
            '<option value="">Choisir une option</option><option>S</option><option>M</option>'
            '</select></div>'
        )
        sizes = fields.extract_option_values(make_element(html), [".size"], SIZE_KEYWORDS)
        assert sizes == ["S", "M"]

    def test_select_with_other_label_ignored(self):
        html = '<div><select name="quantity"><option>1</option><option>2</option></select></div>'
        assert fields.extract_option_values(make_element(html), [".size"], SIZE_KEYWORDS) == []

    def test_option_axes(self):
        options = [
            {"name": "Couleur", "values": ["Rouge", "Bleu"]},
            {"name": "Taille", "values": ["S", "M", "S"]},
            {"name": "Matière", "values": ["Lin"]},
        ]
        colors, sizes = fields.option_axes(options, COLOR_KEYWORDS, SIZE_KEYWORDS)
        assert colors == ["Rouge", "Bleu"]
        assert sizes == ["S", "M"]


class TestCategorySkuLinks:
    def test_breadcrumb_root_stripped(self):
        assert fields.clean_category("Accueil > Femme > Robes") == "Femme > Robes"
        assert fields.clean_category("Home / Men / Shirts") == "Men > Shirts"

    def test_breadcrumb_list(self):
        page = make_element('<div><nav class="breadcrumb"><ol><li>Accueil</li><li>Luminaires</li><li>Lampes</li></ol></nav></div>')
        assert fields.extract_category(page, [".breadcrumb"]) == "Luminaires > Lampes"

    @pytest.mark.parametrize("raw, expected", [
        ("SKU: RL-0113", "RL-0113"),
        ("Réf. 4455 ", "4455"),
        ("AB 12/3", "AB123"),
    ])
    def test_clean_sku(self, raw, expected):
        assert fields.clean_sku(raw) == expected

    def test_extract_link_skips_anchors(self):
        card = make_element('<div><a href="#">x</a><a href="/produit/vase">Vase</a></div>')
        assert fields.extract_link(card, ["a[href]"], "https://shop.example.com/c/") == "https://shop.example.com/produit/vase"


class TestExternalIds:
    def test_platform_id_first(self):
        assert fields.make_external_id(platform_id=7001, product_url="https://s/products/robe") == "7001"

    def test_data_product_id(self):
        card = make_element('<div data-product-id="A1"><a href="/p/robe">Robe</a></div>')
        assert fields.make_external_id(element=card, product_url="https://s/p/robe") == "A1"

    def test_url_slug(self):
        assert fields.make_external_id(product_url="https://s/produit/vase-gres.html") == "vase-gres"

    def test_sku(self):
        assert fields.make_external_id(sku="RL-0113") == "RL-0113"

    def test_name_hash_is_deterministic(self):
        first = fields.make_external_id(name="Robe Lin", price=Decimal("49.90"))
        second = fields.make_external_id(name="Robe Lin", price=Decimal("49.90"))
        assert first == second
        assert first.startswith("robe-lin-")


class TestJsonWalking:
    def test_finds_nested_images(self):
        data = {"media": [{"preview": {"src": "//cdn.example.com/a.jpg"}}], "note": "not an image"}
        assert fields.find_image_urls(data) == ["https://cdn.example.com/a.jpg"]

    def test_depth_bound(self):
        data = {"a": {"b": {"c": {"d": "https://cdn.example.com/deep.jpg"}}}}
        assert fields.find_image_urls(data, max_depth=2) == []
        assert fields.find_image_urls(data, max_depth=5) == ["https://cdn.example.com/deep.jpg"]

    def test_cycle_terminates(self):
        data = {"image": "https://cdn.example.com/a.jpg"}
        data["self"] = data
        assert fields.find_image_urls(data) == ["https://cdn.example.com/a.jpg"]


class TestBuildProduct:
    def test_gate_rejects_empty_name(self):
        assert fields.build_product(name=" ", price=Decimal("5"), external_id="x", tier="t") is None

    @pytest.mark.parametrize("price", [None, Decimal("0"), Decimal("-1")])
    def test_gate_rejects_bad_price(self, price):
        assert fields.build_product(name="Robe", price=price, external_id="x", tier="t") is None

    def test_builds_variants_and_image(self):
        product = fields.build_product(
            name="Robe Lin", price=Decimal("49.90"), external_id="7001", tier="dom_heuristic",
            image_urls=["https://s/a.jpg", "https://s/a.jpg", "https://s/b.jpg"],
            colors=["Rouge", "Bleu", "Rouge"], sizes=["S", "M"],
        )
        assert product.image_url == "https://s/a.jpg"
        assert product.image_urls == ["https://s/a.jpg", "https://s/b.jpg"]
        assert product.colors == ["Rouge", "Bleu"]
        assert len(product.variants) == 4
        assert product.extraction_tier == "dom_heuristic"
