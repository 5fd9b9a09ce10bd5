from __future__ import annotations

import argparse
import logging

from dotenv import load_dotenv

from app.twstock_radar.services.pipeline import PipelineService

load_dotenv()


def main(argv: list[str] | None = None) -> None:
    parser = argparse.ArgumentParser(description="Refresh the watch-list dashboard data once.")
    parser.add_argument("--quick", action="store_true", help="skip price history and technical indicators")
    parser.add_argument("-v", "--verbose", action="store_true")
    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.INFO if args.verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    service = PipelineService()
    payload = service.get_stocks_quick() if args.quick else service.get_stocks_complete()

    summary = payload.summary
    print(f"Updated {payload.updated_at}: {summary.total} stocks")
    print(f"bullish={summary.bullish} neutral={summary.neutral} bearish={summary.bearish}")
    for stock in payload.stocks:
        tags = " ".join(f"{t.icon}{t.text}" for t in stock.analysis.tags[:3])
        print(f"{stock.id:>6} {stock.name:<12} {stock.analysis.rating:<13} score={stock.analysis.score:+d} {tags}")
    for signal in summary.signals:
        print(f"[{signal.type}] {signal.text}")


if __name__ == "__main__":
    main()
