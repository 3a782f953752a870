#!/usr/bin/env python3
"""
Prime Label Automation - herramienta de operador.

Sincroniza órdenes Prime de Amazon, compra etiquetas con el bloque SKU/QTY
y reimprime etiquetas guardadas. Los logs van a stderr; stdout queda para
el ZPL o el reporte JSON.

Usage:
    # Traer órdenes Prime sin enviar
    python -m app.cli sync

    # Comprar etiqueta (peso y medidas explícitos)
    python -m app.cli buy-label 405-1234567-1234567 --weight 200 --weight-unit oz \\
        --length 10 --width 6 --height 2 --output label.zpl

    # Comprar etiqueta usando los valores guardados para el SKU
    python -m app.cli buy-label 405-1234567-1234567

    # Compra masiva con el mismo paquete
    python -m app.cli bulk-buy ID1 ID2 ID3 --weight 1 --weight-unit kg \\
        --length 30 --width 20 --height 10 --dim-unit cm --output labels.zpl

    # Reimprimir
    python -m app.cli reprint 405-1234567-1234567
    python -m app.cli bulk-reprint ID1 ID2 --output labels.zpl
"""

import argparse
import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Any, List, Optional, Tuple

from app.container import ServiceContainer, build_services
from app.core.config import get_settings
from app.core.logging_config import setup_logging
from app.domain.models import BatchReport, OrderStatus
from app.domain.value_objects import Dimensions, Weight
from app.utils.error_handler import AppException, ValidationException, create_error_response, log_error

logger = logging.getLogger(__name__)

EXIT_OK = 0
EXIT_ERROR = 1
EXIT_INTERRUPTED = 130

PACKAGE_FIELDS = ("weight", "length", "width", "height")


def _add_package_arguments(parser: argparse.ArgumentParser, required: bool) -> None:
    group = parser.add_argument_group("package")
    group.add_argument("--weight", type=float, required=required, help="Package weight value")
    group.add_argument("--weight-unit", default="oz", help="oz | lb | g | kg (default: oz)")
    group.add_argument("--length", type=float, required=required, help="Package length")
    group.add_argument("--width", type=float, required=required, help="Package width")
    group.add_argument("--height", type=float, required=required, help="Package height")
    group.add_argument("--dim-unit", default="in", help="in | cm (default: in)")


def _add_output_argument(parser: argparse.ArgumentParser) -> None:
    parser.add_argument("--output", "-o", type=Path, help="Write the ZPL to this file instead of stdout")


def build_parser() -> argparse.ArgumentParser:
    """Construye el parser con todos los subcomandos."""
    parser = argparse.ArgumentParser(
        prog="prime-labels",
        description="Amazon Prime label automation: order sync, label purchase and reprint",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--mock", action="store_true", help="Use the simulated Amazon source (same as USE_MOCK=true)")

    subparsers = parser.add_subparsers(dest="command", required=True)

    subparsers.add_parser("sync", help="Fetch unshipped Prime orders from Amazon")

    list_parser = subparsers.add_parser("list-orders", help="List local orders")
    list_parser.add_argument(
        "--status", choices=[status.value for status in OrderStatus], help="Filter by order status"
    )

    buy_parser = subparsers.add_parser("buy-label", help="Buy the label for one order")
    buy_parser.add_argument("order_id", help="Amazon order id")
    _add_package_arguments(buy_parser, required=False)
    _add_output_argument(buy_parser)

    bulk_buy_parser = subparsers.add_parser("bulk-buy", help="Buy labels for several orders with the same package")
    bulk_buy_parser.add_argument("order_ids", nargs="+", help="Amazon order ids")
    _add_package_arguments(bulk_buy_parser, required=True)
    _add_output_argument(bulk_buy_parser)

    reprint_parser = subparsers.add_parser("reprint", help="Print the saved label of one order")
    reprint_parser.add_argument("order_id", help="Amazon order id")
    _add_output_argument(reprint_parser)

    bulk_reprint_parser = subparsers.add_parser("bulk-reprint", help="Print the saved labels of several orders")
    bulk_reprint_parser.add_argument("order_ids", nargs="+", help="Amazon order ids")
    _add_output_argument(bulk_reprint_parser)

    defaults_parser = subparsers.add_parser("defaults", help="Show saved weight and dimensions for a sku")
    defaults_parser.add_argument("sku", help="Seller sku")

    return parser


def package_from_args(args: argparse.Namespace) -> Optional[Tuple[Weight, Dimensions]]:
    """
    Peso y medidas desde los argumentos.

    Returns:
        Tupla (Weight, Dimensions) o None si no se pasó ningún valor

    Raises:
        ValidationException: Si se pasaron solo algunos valores
    """
    provided = [name for name in PACKAGE_FIELDS if getattr(args, name, None) is not None]
    if not provided:
        return None
    if len(provided) != len(PACKAGE_FIELDS):
        missing = [name for name in PACKAGE_FIELDS if name not in provided]
        raise ValidationException(
            message=f"Incomplete package: missing {', '.join('--' + name for name in missing)}",
            field="package",
        )

    weight = Weight(value=args.weight, unit=args.weight_unit)
    dimensions = Dimensions(length=args.length, width=args.width, height=args.height, unit=args.dim_unit)
    return weight, dimensions


def _emit(data: Any) -> None:
    print(json.dumps(data, indent=2, ensure_ascii=False, default=str))


def _write_zpl(zpl: str, output: Optional[Path]) -> None:
    if output is None:
        sys.stdout.write(zpl if zpl.endswith("\n") else zpl + "\n")
        return
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(zpl, encoding="utf-8")
    logger.info(f"ZPL written to {output}")


def _report_exit_code(report: BatchReport) -> int:
    return EXIT_ERROR if report.failed else EXIT_OK


async def _resolve_package(services: ServiceContainer, args: argparse.Namespace) -> Tuple[Weight, Dimensions]:
    """Paquete desde argumentos o, si no hay, desde los valores guardados del SKU."""
    package = package_from_args(args)
    if package is not None:
        return package

    order = await services.order_repository.get_order(args.order_id)
    skus = order.distinct_skus if order else []
    if len(skus) == 1:
        defaults = await services.orchestrator.get_shipping_defaults(skus[0])
        if defaults is not None:
            logger.info(f"Using saved package for sku {skus[0]}: {defaults.weight}, {defaults.dimensions.to_dict()}")
            return defaults.weight, defaults.dimensions

    raise ValidationException(
        message="No package given and no saved defaults for this order's sku; pass --weight and dimensions",
        field="package",
    )


async def run_command(args: argparse.Namespace, services: ServiceContainer) -> int:
    """
    Ejecuta un subcomando ya parseado.

    Returns:
        int: Código de salida
    """
    if args.command == "sync":
        _emit(await services.synchronizer.sync_orders())
        return EXIT_OK

    if args.command == "list-orders":
        orders = await services.order_repository.list_orders(status=args.status)
        _emit([order.to_summary() for order in orders])
        return EXIT_OK

    if args.command == "buy-label":
        weight, dimensions = await _resolve_package(services, args)
        result = await services.orchestrator.buy_label(args.order_id, weight, dimensions)
        if args.output is None:
            _emit(result.to_dict())
        else:
            _write_zpl(result.zpl, args.output)
            _emit(result.to_dict(include_zpl=False))
        return EXIT_OK

    if args.command == "bulk-buy":
        weight, dimensions = package_from_args(args)
        report = await services.orchestrator.bulk_buy_labels(args.order_ids, weight, dimensions)
        if args.output is not None and report.labels:
            _write_zpl(report.zpl, args.output)
        _emit(report.to_dict(include_zpl=args.output is None))
        return _report_exit_code(report)

    if args.command == "reprint":
        zpl = await services.orchestrator.reprint_label(args.order_id)
        _write_zpl(zpl, args.output)
        return EXIT_OK

    if args.command == "bulk-reprint":
        report = await services.orchestrator.bulk_reprint_labels(args.order_ids)
        if args.output is not None and report.labels:
            _write_zpl(report.zpl, args.output)
        _emit(report.to_dict(include_zpl=args.output is None))
        return _report_exit_code(report)

    if args.command == "defaults":
        defaults = await services.orchestrator.get_shipping_defaults(args.sku)
        _emit(defaults.to_dict() if defaults else None)
        return EXIT_OK

    raise ValueError(f"Unknown command: {args.command}")


async def main_async(argv: Optional[List[str]] = None) -> int:
    """Punto de entrada asíncrono."""
    args = build_parser().parse_args(argv)

    settings = get_settings()
    if args.mock:
        settings = settings.model_copy(update={"USE_MOCK": True})
    setup_logging(settings)

    try:
        async with build_services(settings=settings) as services:
            return await run_command(args, services)
    except AppException as e:
        log_error(e, {"operation": f"cli.{args.command}"})
        print(json.dumps(create_error_response(e), indent=2, default=str), file=sys.stderr)
        return EXIT_ERROR


def main(argv: Optional[List[str]] = None) -> int:
    try:
        return asyncio.run(main_async(argv))
    except KeyboardInterrupt:
        logger.warning("Operation interrupted by user")
        return EXIT_INTERRUPTED


if __name__ == "__main__":
    sys.exit(main())
