from __future__ import annotations

from decimal import Decimal

from PIL import Image

from storefront.constant import DEFAULT_DAY_ID
from storefront.export import build_order_document, customer_lines, render_order_html, suggested_filename
from storefront.export_image import render_order_image, resolve_export_font_path, save_order_document
from storefront.rendering import format_money, theme_color


def _filled(engine):
    engine.set_customer_details(name="Dana Lee", email="dana@example.com", attendees=4)
    engine.update_day_detail(DEFAULT_DAY_ID, "event", "Corporate / Lunch")
    engine.set_quantity("a", 3)
    engine.set_quantity("b", 2)
    engine.add_day()
    return engine


def test_document_includes_every_day(engine):
    document = build_order_document(_filled(engine))

    assert [day.label for day in document.days] == ["Order 1", "Order 2"]
    first, second = document.days
    assert [title for title, _ in first.groups] == ["Mains"]
    assert [line.name for line in first.groups[0][1]] == ["Item A", "Item B"]
    assert first.subtotal == Decimal("40.00")
    assert second.groups == ()
    assert second.subtotal == 0
    assert document.total == Decimal("84.00")
    assert document.per_head == Decimal("21.00")


def test_document_is_detached_from_engine(engine):
    document = build_order_document(_filled(engine))

    engine.set_customer_details(name="Someone Else")

    assert document.customer.name == "Dana Lee"


def test_suggested_filename(engine):
    document = build_order_document(_filled(engine))

    assert suggested_filename(document) == "Dana_Lee_Corporate___Lunch.pdf"
    assert suggested_filename(document, "png").endswith(".png")


def test_suggested_filename_defaults(engine):
    assert suggested_filename(build_order_document(engine)) == "customer_order.pdf"


def test_customer_lines_skip_blank_optional_fields(engine):
    engine.set_customer_details(name="Dana Lee")

    labels = [label for label, _ in customer_lines(engine.customer_details)]

    assert labels == ["Name", "Attendees", "Service", "Equipment"]


def test_render_order_html(engine):
    html = render_order_html(build_order_document(_filled(engine)), "Nidys Thai Van and Catering")

    assert html.lstrip().startswith("<!DOCTYPE html>")
    assert "Nidys Thai Van and Catering" in html
    assert "Item A" in html
    assert "$84.00" in html
    assert "dana@example.com" in html


def test_render_order_image_and_save(engine, tmp_path):
    document = build_order_document(_filled(engine))

    image = render_order_image(document, "Catering")
    assert image.width == 794
    assert image.height > 200

    png = save_order_document(document, tmp_path / "out" / "order.png", "Catering")
    pdf = save_order_document(document, tmp_path / "order.pdf", "Catering")

    with Image.open(png) as reopened:
        assert reopened.format == "PNG"
    assert pdf.read_bytes().startswith(b"%PDF")


def test_font_override_from_environment(tmp_path, monkeypatch):
    font = tmp_path / "custom.ttf"
    font.write_bytes(b"")
    monkeypatch.setenv("STOREFRONT_EXPORT_FONT_PATH", str(font))

    assert resolve_export_font_path() == str(font)


def test_money_and_theme_formatting():
    assert format_money(Decimal("1234.5")) == "$1,234.50"
    assert format_money(Decimal("9.594")) == "$9.59"
    assert theme_color("cyan") == "#06b6d4"
    assert theme_color("#123456") == "#123456"
    assert theme_color("unknown") == "#f59e0b"
