import argparse
import logging
from decimal import Decimal

from zcurve_core.common.constants import QUAD_CAP, SALE_CAP, WAD
from zcurve_core.analysis.sampler import CurveSampler
from zcurve_core.webapi.webapi import app


logger = logging.getLogger(__name__)


def _eth(amount_wei: int) -> str:
    return f"{Decimal(amount_wei) / Decimal(WAD):.18f}".rstrip("0").rstrip(".")


def cmd_analyze(args: argparse.Namespace) -> str:
    targets = [int(Decimal(t) * WAD) for t in args.targets] if args.targets else None
    scenarios = CurveSampler.analyze_scenarios(
        sale_cap=int(Decimal(args.sale_cap) * WAD),
        quad_cap=int(Decimal(args.quad_cap) * WAD),
        target_raises=targets,
    )
    lines = ["target_eth  divisor  avg_price  p25  p50  p75  p100  coins_for_1_eth"]
    for s in scenarios:
        lines.append("  ".join([
            _eth(s.target_raise),
            str(s.divisor),
            _eth(s.average_price),
            _eth(s.price_at_25_percent),
            _eth(s.price_at_50_percent),
            _eth(s.price_at_75_percent),
            _eth(s.price_at_100_percent),
            _eth(s.coins_for_one_eth),
        ]))
    return "\n".join(lines)


def cmd_serve(args: argparse.Namespace) -> str:
    logger.info("Serving zCurve pricing API on %s:%d", args.host, args.port)
    app.run(host=args.host, port=args.port, debug=args.debug)
    return ""


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="zcurve_core", description="zCurve sale pricing engine")
    parser.add_argument("--log-level", default="INFO")
    sub = parser.add_subparsers(dest="command", required=True)

    analyze = sub.add_parser("analyze", help="Compare curve shapes across target raises")
    analyze.add_argument("--sale-cap", default=str(SALE_CAP // WAD), help="Whole coins offered")
    analyze.add_argument("--quad-cap", default=str(QUAD_CAP // WAD), help="Whole coins in the quadratic region")
    analyze.add_argument("--targets", nargs="*", help="Target raises in ETH")
    analyze.set_defaults(func=cmd_analyze)

    serve = sub.add_parser("serve", help="Run the HTTP pricing API")
    serve.add_argument("--host", default="127.0.0.1")
    serve.add_argument("--port", type=int, default=5000)
    serve.add_argument("--debug", action="store_true")
    serve.set_defaults(func=cmd_serve)

    return parser


def main(argv=None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    output = args.func(args)
    if output:
        print(output)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
