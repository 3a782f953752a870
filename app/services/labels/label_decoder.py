"""
Decoding of createShipment label payloads.

Merchant Fulfillment returns the label as base64 of a gzip stream. Some
sandbox responses skip the compression, so plain base64 text is accepted too.
"""

import base64
import binascii
import gzip
import logging
import zlib
from dataclasses import dataclass
from typing import Optional

from app.db.amazon_clients.schemas import CreateShipmentPayload
from app.utils.error_handler import LabelDataMissingException, LabelFormatException

logger = logging.getLogger(__name__)

GZIP_MAGIC = b"\x1f\x8b"


@dataclass(frozen=True)
class ExtractedLabel:
    """Label fields extracted from a createShipment response."""

    amazon_order_id: str
    contents: str
    tracking_id: Optional[str] = None
    shipment_id: Optional[str] = None


def decode_label_contents(contents: str) -> str:
    """
    Decode base64 (optionally gzipped) label contents into ZPL text.

    Raises:
        LabelFormatException: If the contents cannot be decoded
    """
    try:
        raw = base64.b64decode(contents, validate=False)
        if raw.startswith(GZIP_MAGIC):
            raw = gzip.decompress(raw)
        return raw.decode("utf-8")
    except (binascii.Error, OSError, EOFError, zlib.error, UnicodeDecodeError) as e:
        raise LabelFormatException(f"Label contents could not be decoded: {e}") from e


def extract_shipment_label(payload: CreateShipmentPayload, amazon_order_id: str) -> ExtractedLabel:
    """
    Pull tracking id and label contents out of a createShipment payload.

    Raises:
        LabelDataMissingException: If shipment, label or contents are absent
    """
    shipment = payload.Shipment
    if shipment is None:
        raise LabelDataMissingException("Shipment data missing in createShipment response.", amazon_order_id)

    if shipment.Label is None:
        raise LabelDataMissingException("Label data missing in createShipment response.", amazon_order_id)

    file_contents = shipment.Label.FileContents
    if file_contents is None or not file_contents.Contents:
        raise LabelDataMissingException("Label file contents missing in createShipment response.", amazon_order_id)

    if not shipment.TrackingId:
        logger.warning(f"createShipment for {amazon_order_id} returned no tracking id")

    return ExtractedLabel(
        amazon_order_id=amazon_order_id,
        contents=file_contents.Contents,
        tracking_id=shipment.TrackingId,
        shipment_id=shipment.ShipmentId,
    )
