"""
Batch report for bulk label operations.

Bulk purchase and bulk reprint fold over the requested order ids and
record one entry per id. Labels of successful entries are concatenated,
in input order, into a single downloadable ZPL document.
"""

from dataclasses import dataclass, field
from typing import Any


@dataclass
class BatchEntry:
    """
    Outcome for one order id of a batch.

    Attributes:
        amazon_order_id: Order id as requested
        success: Whether the operation succeeded for this id
        tracking_id: Tracking id (purchase only)
        error: Human readable failure reason
        error_code: Stable error code for the failure
        warnings: Non-fatal warnings (dimensional weight, sku truncation...)
    """

    amazon_order_id: str
    success: bool
    tracking_id: str | None = None
    error: str | None = None
    error_code: str | None = None
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"amazon_order_id": self.amazon_order_id}
        if self.success:
            if self.tracking_id is not None:
                data["tracking_id"] = self.tracking_id
        else:
            data["error"] = self.error
            data["error_code"] = self.error_code
        if self.warnings:
            data["warnings"] = list(self.warnings)
        return data


@dataclass
class BatchReport:
    """Aggregate result of a bulk operation. Never persisted."""

    succeeded: list[BatchEntry] = field(default_factory=list)
    failed: list[BatchEntry] = field(default_factory=list)
    labels: list[str] = field(default_factory=list)

    def add_success(
        self,
        amazon_order_id: str,
        zpl: str,
        tracking_id: str | None = None,
        warnings: list[str] | None = None,
    ) -> None:
        self.succeeded.append(
            BatchEntry(
                amazon_order_id=amazon_order_id,
                success=True,
                tracking_id=tracking_id,
                warnings=list(warnings or []),
            )
        )
        self.labels.append(zpl)

    def add_failure(self, amazon_order_id: str, error: str, error_code: str | None = None) -> None:
        self.failed.append(
            BatchEntry(amazon_order_id=amazon_order_id, success=False, error=error, error_code=error_code)
        )

    @property
    def total(self) -> int:
        return len(self.succeeded) + len(self.failed)

    @property
    def zpl(self) -> str:
        """Combined ZPL document, newline-joined in input order."""
        return "\n".join(self.labels)

    @property
    def summary(self) -> dict[str, int]:
        return {"total": self.total, "succeeded": len(self.succeeded), "failed": len(self.failed)}

    def to_dict(self, include_zpl: bool = True) -> dict[str, Any]:
        data: dict[str, Any] = {
            "succeeded": [entry.to_dict() for entry in self.succeeded],
            "failed": [entry.to_dict() for entry in self.failed],
            "summary": self.summary,
        }
        if include_zpl:
            data["zpl"] = self.zpl
        return data
