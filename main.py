#!/usr/bin/env python3
"""
main.py: bootstrap rate curves and price FX options from the command line.

Usage:
    python main.py bootstrap data/usd_quotes.csv --method bloomberg --currency USD
    python main.py bootstrap data/usd_quotes.csv --compare --plot
    python main.py price --type call --pair EUR/USD --spot 1.10 --strike 100 \
        --strike-type percent --maturity 1 --vol 10 --rd 4.5 --rf 3
"""

import argparse
import json
import logging
import sys
import time

from fxcore import config
from fxcore.bootstrap import bootstrap
from fxcore.curve import CurveMethod
from fxcore.errors import CurveError, PricingError
from fxcore.quotes import load_quotes_csv, quotes_to_frame
from fxcore.requests import PricingRequest, price_request


def parse_args(argv=None):
    p = argparse.ArgumentParser(description="Bootstrap rate curves and price FX options.")
    p.add_argument("--verbose", "-v", action="store_true", help="log bootstrap and pricing details")
    sub = p.add_subparsers(dest="command", required=True)

    b = sub.add_parser("bootstrap", help="build a curve from a quote file")
    b.add_argument("quotes", type=str, help="CSV with columns tenor, rate, source[, priority]")
    b.add_argument("--method", type=str, default=CurveMethod.QL_MONOTONIC_CONVEX.value,
                   choices=[m.value for m in CurveMethod])
    b.add_argument("--currency", type=str, default="USD")
    b.add_argument("--percent", action="store_true", help="rates in the file are in percent")
    b.add_argument("--compare", action="store_true", help="run every method on the same quotes")
    b.add_argument("--ns-max-iter", type=int, default=config.NS_MAX_ITER)
    b.add_argument("--out", type=str, default=None, help="write the discount-factor report here")
    b.add_argument("--plot", action="store_true", help="write PNG and HTML charts to output/")

    q = sub.add_parser("price", help="price one option")
    q.add_argument("--type", dest="option_type", required=True)
    q.add_argument("--pair", default="EUR/USD")
    q.add_argument("--spot", type=float, required=True)
    q.add_argument("--strike", type=float, default=None)
    q.add_argument("--strike-type", choices=["percent", "absolute"], default="absolute")
    q.add_argument("--maturity", type=float, required=True, help="years")
    q.add_argument("--vol", type=float, required=True, help="volatility in percent")
    q.add_argument("--rd", type=float, default=None, help="domestic rate in percent")
    q.add_argument("--rf", type=float, default=None, help="foreign rate in percent")
    q.add_argument("--barrier", type=float, default=None)
    q.add_argument("--second-barrier", type=float, default=None)
    q.add_argument("--barrier-type", choices=["percent", "absolute"], default="absolute")
    q.add_argument("--rebate", type=float, default=None)
    q.add_argument("--quantity", type=float, default=None, help="percent of one unit")
    q.add_argument("--notional", type=float, default=None)
    q.add_argument("--pay-at-touch", action="store_true", default=None)
    q.add_argument("--no-greeks", action="store_true")
    return p.parse_args(argv)


def run_bootstrap(args):
    print(f"\n{'='*60}")
    print(f"  Curve Bootstrapper")
    print(f"  Quotes: {args.quotes}  |  Currency: {args.currency}")
    print(f"{'='*60}\n")

    t0 = time.time()
    print("[1/3] Loading quotes...")
    quotes = load_quotes_csv(args.quotes, rate_in_percent=args.percent)
    frame = quotes_to_frame(quotes)
    print(f"       Quotes: {len(quotes)}")
    for source, count in frame["source"].value_counts().items():
        print(f"       {source}: {count}")

    methods = list(CurveMethod) if args.compare else [CurveMethod.parse(args.method)]
    print(f"\n[2/3] Bootstrapping ({', '.join(m.value for m in methods)})...")
    curves = []
    for method in methods:
        try:
            curve = bootstrap(quotes, method, args.currency, ns_max_iter=args.ns_max_iter)
        except CurveError as e:
            if not args.compare:
                raise
            print(f"       {method.value:<28} FAILED: {e}")
            continue
        summary = curve.summary()
        print(f"       {method.value:<28} pillars={summary['n_pillars']:<3} "
              f"short={summary['short_rate']:.4%}  long={summary['long_rate']:.4%}")
        curves.append(curve)

    if not curves:
        raise CurveError("no method produced a curve")

    print("\n[3/3] Writing outputs...")
    if args.out:
        curves[0].to_csv(args.out, tenors=curves[0].grid_report()["tenor"])
        print(f"       -> {args.out}")
    else:
        print(curves[0].report().to_string(index=False))

    if args.plot:
        from fxcore.visualization import plot_curves_matplotlib, plot_curves_plotly
        print(f"       -> {plot_curves_matplotlib(curves)}")
        print(f"       -> {plot_curves_plotly(curves)}")

    elapsed = time.time() - t0
    print(f"\n  Done in {elapsed:.1f}s.\n")


def run_price(args):
    payload = {
        "optionType": args.option_type,
        "currencyPair": args.pair,
        "spotPrice": args.spot,
        "strike": args.strike,
        "strikeType": args.strike_type,
        "maturity": args.maturity,
        "volatility": args.vol,
        "domesticRate": args.rd,
        "foreignRate": args.rf,
        "barrier": args.barrier,
        "secondBarrier": args.second_barrier,
        "barrierType": args.barrier_type,
        "rebate": args.rebate,
        "quantity": args.quantity,
        "notional": args.notional,
        "payAtTouch": args.pay_at_touch,
    }
    request = PricingRequest.from_dict(payload)
    response = price_request(request, with_greeks=not args.no_greeks)
    print(json.dumps(response.to_dict(), indent=2))


def main(argv=None):
    args = parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(asctime)s %(name)s %(levelname)s %(message)s")
    else:
        logging.basicConfig(level=logging.WARNING, format="%(levelname)s %(message)s")

    try:
        if args.command == "bootstrap":
            run_bootstrap(args)
        else:
            run_price(args)
    except (CurveError, PricingError, ValueError, OSError) as e:
        print(f"\n  ERROR: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
