#!/usr/bin/env python3
"""
bizmetrics Demo - pivot report and series insights on synthetic sales data.

Runs the complete analytics workflow offline:
1. Generates a seeded synthetic sales fact table (stores, categories, channels)
2. Builds a pivot report by the requested dimensions
3. Builds a daily revenue series and prints trend, anomalies, forecast
   and period comparisons as JSON

Usage:
    python scripts/demo_run.py                              # Defaults (90 days, seed 42)
    python scripts/demo_run.py --days 180 --seed 7
    python scripts/demo_run.py --dimensions store channel --granularity month
"""

import argparse
import json
import random
import sys
from datetime import date, datetime, timedelta
from pathlib import Path

sys.path.insert(0, str(Path(__file__).parent.parent))

import structlog

from bizmetrics.engine import InsightEngine, build_lookups
from bizmetrics.models import Dimension, Granularity, Metric, ReportQuery
from bizmetrics.utils import configure_logging

logger = structlog.get_logger()


class SalesDataGenerator:
    """
    Seeded generator of daily sales fact rows.

    Revenue follows a mild upward trend with a weekend lift, plus one
    injected spike day so anomaly detection has something to find.
    """

    STORES = {"s1": "Downtown", "s2": "Airport", "s3": "Harbor"}
    LOCATIONS = {"l1": "North Counter", "l2": "South Counter"}
    CATEGORIES = ["Coffee", "Pastry", "Sandwiches", "Merchandise"]
    PAYMENT_METHODS = ["card", "cash", "mobile"]

    def __init__(self, seed: int = 42, days: int = 90, end_date: date | None = None):
        self.seed = seed
        self.days = days
        self.rng = random.Random(seed)
        self.end_date = end_date or date.today()
        self.start_date = self.end_date - timedelta(days=days - 1)

        logger.info(
            "demo_generator_initialized",
            seed=seed,
            days=days,
            start_date=self.start_date.isoformat(),
            end_date=self.end_date.isoformat(),
        )

    def generate(self, orders_per_day: int = 12) -> list[dict]:
        rows = []
        spike_day = self.days * 2 // 3
        for offset in range(self.days):
            day = self.start_date + timedelta(days=offset)
            weekend_lift = 1.3 if day.weekday() >= 5 else 1.0
            trend = 1 + offset * 0.004
            spike = 6.0 if offset == spike_day else 1.0

            for _ in range(orders_per_day):
                store_id = self.rng.choice(list(self.STORES))
                revenue = round(self.rng.uniform(8, 40) * weekend_lift * trend * spike, 2)
                cost = round(revenue * self.rng.uniform(0.35, 0.6), 2)
                rows.append(
                    {
                        "sale_date": day.isoformat(),
                        "store_id": store_id,
                        "location_id": self.rng.choice(list(self.LOCATIONS)),
                        "category": self.rng.choice(self.CATEGORIES),
                        "payment_method": self.rng.choice(self.PAYMENT_METHODS),
                        "pickup_location_id": None if self.rng.random() < 0.3 else store_id,
                        "total_revenue": revenue,
                        "total_cogs": cost,
                        "total_tax": round(revenue * 0.08, 2),
                        "total_discounts": round(revenue * 0.05, 2) if self.rng.random() < 0.2 else 0,
                        "quantity_sold": self.rng.randint(1, 4),
                    }
                )

        logger.info("demo_rows_generated", rows=len(rows))
        return rows

    def resolve_names(self, kind: str, ids: list) -> dict:
        table = self.STORES if kind == "stores" else self.LOCATIONS
        return {i: table[i] for i in ids if i in table}


def main():
    parser = argparse.ArgumentParser(description="Run the bizmetrics analytics demo")
    parser.add_argument("--days", type=int, default=90, help="Days of synthetic sales")
    parser.add_argument("--seed", type=int, default=42, help="Random seed for reproducibility")
    parser.add_argument(
        "--dimensions",
        nargs="+",
        default=["store", "category"],
        choices=[d.value for d in Dimension],
        help="Report dimensions",
    )
    parser.add_argument(
        "--metrics",
        nargs="+",
        default=["orders", "revenue", "profit", "margin"],
        choices=[m.value for m in Metric],
        help="Report metrics",
    )
    parser.add_argument(
        "--granularity",
        default="day",
        choices=[g.value for g in Granularity],
        help="Date bucketing when 'date' is a dimension",
    )
    args = parser.parse_args()

    configure_logging()

    print("\n" + "=" * 60)
    print("bizmetrics Demo")
    print("=" * 60)

    print(f"\n[1/3] Generating {args.days} days of sales (seed={args.seed})...")
    generator = SalesDataGenerator(seed=args.seed, days=args.days)
    rows = generator.generate()
    print(f"  {len(rows)} fact rows.\n")

    engine = InsightEngine()

    print("[2/3] Pivot report...")
    query = ReportQuery(
        dimensions=args.dimensions,
        metrics=args.metrics,
        date_granularity=args.granularity,
    )
    lookups = build_lookups(rows, query.dimensions, generator.resolve_names)
    report = engine.report(rows, query, lookups)
    for record in report.to_records()[:10]:
        formatted = {
            key: engine.pivot.registry.format_value(key, value) if key in report.totals else value
            for key, value in record.items()
        }
        print("  " + " | ".join(str(v) for v in formatted.values()))
    if report.row_count > 10:
        print(f"  ... {report.row_count - 10} more rows")
    print(f"  Totals: {json.dumps(report.totals, indent=None)}\n")

    print("[3/3] Revenue series insights...")
    series = engine.pivot.time_series(rows, Metric.REVENUE)
    now = datetime.combine(generator.end_date, datetime.min.time())
    insights = engine.analyze(series, now=now)
    print(json.dumps(insights.model_dump(mode="json"), indent=2))

    print("\n" + "=" * 60)
    print("DEMO COMPLETE")
    print("=" * 60 + "\n")


if __name__ == "__main__":
    main()
