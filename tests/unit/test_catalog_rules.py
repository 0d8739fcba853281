"""Unit tests for slug generation, image URL rules and product request validation."""

import pytest
from pydantic import ValidationError

from src.mp_catalog.application.schemas import CreateProductRequest, SellerSignupRequest
from src.mp_catalog.domain.rules import (
    MAX_IMAGE_URL_LENGTH,
    is_valid_image_url,
    next_free_slug,
    normalize_image_urls,
    slugify,
)


class TestSlugify:
    @pytest.mark.parametrize(
        "name, slug",
        [
            ("Luminous 1100VA Inverter", "luminous-1100va-inverter"),
            ("  4 sq.mm  Cable (Red) ", "4-sq-mm-cable-red"),
            ("ÆON – Solar/Panel!!", "on-solar-panel"),
            ("---", ""),
        ],
    )
    def test_slugify(self, name: str, slug: str) -> None:
        assert slugify(name) == slug


class TestNextFreeSlug:
    def test_base_free(self) -> None:
        assert next_free_slug("panel", []) == ("panel", 1)

    def test_skips_taken_suffixes(self) -> None:
        assert next_free_slug("panel", ["panel", "panel-1", "panel-2"]) == ("panel-3", 4)

    def test_gap_is_filled(self) -> None:
        assert next_free_slug("panel", ["panel", "panel-2"]) == ("panel-1", 2)


class TestImageUrls:
    @pytest.mark.parametrize(
        "url, ok",
        [
            ("https://cdn.example.in/a.png", True),
            ("http://cdn.example.in/a.png", True),
            ("/uploads/a.png", True),
            ("//evil.example/a.png", False),
            ("ftp://host/a.png", False),
            ("javascript:alert(1)", False),
            ("https://", False),
            ("relative/a.png", False),
            ("", False),
            ("/" + "a" * MAX_IMAGE_URL_LENGTH, False),
        ],
    )
    def test_is_valid_image_url(self, url: str, ok: bool) -> None:
        assert is_valid_image_url(url) is ok

    def test_single_string_accepted(self) -> None:
        assert normalize_image_urls(" /a.png ") == ["/a.png"]

    def test_one_bad_entry_rejects_all(self) -> None:
        assert normalize_image_urls(["/a.png", "ftp://x/b.png"]) is None

    def test_empty_rejected(self) -> None:
        assert normalize_image_urls([]) is None
        assert normalize_image_urls(None) is None
        assert normalize_image_urls(["  "]) is None


def _product_body(**overrides: object) -> dict[str, object]:
    body: dict[str, object] = {
        "name": "Havells MCB 32A",
        "description": "Single pole C-curve breaker",
        "price": 249.5,
        "imageUrls": ["https://cdn.example.in/mcb.png"],
        "categoryId": "6f1c2a8e-5b7d-4f0a-9c3e-2d1b0a9f8e7d",
    }
    body.update(overrides)
    return body


class TestCreateProductRequest:
    def test_valid(self) -> None:
        req = CreateProductRequest.model_validate(_product_body(stock=12))
        assert req.image_urls == ["https://cdn.example.in/mcb.png"]
        assert req.category_id.startswith("6f1c")
        assert req.stock == 12

    @pytest.mark.parametrize(
        "overrides",
        [
            {"price": 0},
            {"price": -5},
            {"name": "   "},
            {"description": ""},
            {"imageUrls": []},
            {"imageUrls": ["//cdn/x.png"]},
            {"categoryId": ""},
            {"stock": -1},
        ],
    )
    def test_invalid(self, overrides: dict[str, object]) -> None:
        with pytest.raises(ValidationError):
            CreateProductRequest.model_validate(_product_body(**overrides))

    def test_missing_category(self) -> None:
        body = _product_body()
        del body["categoryId"]
        with pytest.raises(ValidationError):
            CreateProductRequest.model_validate(body)


class TestSellerSignupRequest:
    def test_gst_pattern(self) -> None:
        ok = SellerSignupRequest.model_validate(
            {"businessName": "Shakti Electricals", "gstNumber": "27AAPFU0939F1ZV"}
        )
        assert ok.gst_number == "27AAPFU0939F1ZV"
        with pytest.raises(ValidationError):
            SellerSignupRequest.model_validate({"businessName": "X Y", "gstNumber": "123"})
