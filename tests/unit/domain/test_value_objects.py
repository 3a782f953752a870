"""Tests de los value objects y modelos de dominio."""

import pytest

from app.domain.models import AmazonOrder, BatchReport, OrderItem, OrderStatus
from app.domain.value_objects import Dimensions, Weight


class TestWeight:
    @pytest.mark.parametrize(
        "weight,pounds", [(Weight(32, "oz"), 2.0), (Weight(2, "lb"), 2.0), (Weight(1, "kg"), 2.20462262)]
    )
    def test_to_pounds(self, weight, pounds):
        assert weight.to_pounds() == pytest.approx(pounds)

    def test_unit_is_normalized(self):
        assert Weight(1, " KG ").unit == "kg"

    def test_unknown_unit_cannot_convert(self):
        with pytest.raises(ValueError):
            Weight(1, "stone").to_pounds()

    def test_sp_api_payload_uses_ounces_or_grams(self):
        assert Weight(2, "lb").to_sp_api() == {"Value": 32.0, "Unit": "oz"}
        assert Weight(0.25, "kg").to_sp_api() == {"Value": 250.0, "Unit": "g"}


class TestDimensions:
    def test_dimensional_weight_inches(self):
        assert Dimensions(60, 40, 20, "in").dimensional_weight_pounds() == pytest.approx(48000 / 139)

    def test_dimensional_weight_centimeters(self):
        """L x W x H / 5000 da kg, convertido a libras."""
        assert Dimensions(50, 40, 30, "cm").dimensional_weight_pounds() == pytest.approx(12 * 2.20462262)

    def test_invalid_sides(self):
        assert Dimensions(1, 0, float("nan"), "in").non_finite_or_non_positive() == ["width", "height"]

    def test_side_too_large_for_float_is_invalid(self):
        assert Dimensions(10**400, 2, 3, "in").non_finite_or_non_positive() == ["length"]


class TestAmazonOrder:
    def test_requires_order_id(self):
        with pytest.raises(ValueError):
            AmazonOrder(amazon_order_id="")

    def test_distinct_skus_keep_first_appearance(self):
        order = AmazonOrder(
            amazon_order_id="A",
            items=[OrderItem("SKU-2", 1), OrderItem("SKU-1", 1), OrderItem("SKU-2", 3), OrderItem("", 1)],
        )

        assert order.distinct_skus == ["SKU-2", "SKU-1"]
        assert order.first_item.sku == "SKU-2"
        assert order.total_quantity == 6

    def test_from_dict_round_trip_keeps_status(self):
        order = AmazonOrder(amazon_order_id="A", status="LabelBought", label_zpl="^XA^XZ", customer_name="")

        restored = AmazonOrder.from_dict(order.to_dict())

        assert restored.status is OrderStatus.LABEL_BOUGHT
        assert restored.customer_name == "Unknown"
        assert restored.has_label


class TestBatchReport:
    def test_combined_zpl_and_summary(self):
        report = BatchReport()
        report.add_success("A", "^XA^FDa^FS^XZ", tracking_id="T-A")
        report.add_failure("B", "Order not found in local database.", "ORDER_NOT_FOUND")
        report.add_success("C", "^XA^FDc^FS^XZ")

        assert report.zpl == "^XA^FDa^FS^XZ\n^XA^FDc^FS^XZ"
        assert report.summary == {"total": 3, "succeeded": 2, "failed": 1}

        data = report.to_dict(include_zpl=False)
        assert data["succeeded"] == [{"amazon_order_id": "A", "tracking_id": "T-A"}, {"amazon_order_id": "C"}]
        assert data["failed"][0]["error_code"] == "ORDER_NOT_FOUND"
        assert "zpl" not in data
