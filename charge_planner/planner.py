#!/usr/bin/env python3
"""
Fox Charge Planner

Picks the cheapest AM and PM charging windows from day-ahead electricity prices
and programs them on a FoxESS battery, when charging pays off net of degradation.
"""

import argparse
import asyncio
import logging
import os
import sys
from datetime import date, datetime, timedelta
from pathlib import Path
from typing import List, Optional

from charge_planner.config import Config
from charge_planner.foxess_client import FoxESSClient
from charge_planner.models import DeviceSchedule, PriceSlot, Schedule
from charge_planner.price_client import ElprisetClient
from charge_planner.viability import ViabilityEvaluator
from charge_planner.window_selector import WindowSelector

logger = logging.getLogger(__name__)


def setup_logging(log_dir: str = 'logs') -> None:
    """Stream logging, plus a file log outside Lambda"""
    if logging.getLogger().handlers:
        return
    handlers: List[logging.Handler] = [logging.StreamHandler()]
    if os.environ.get('AWS_LAMBDA_FUNCTION_NAME') is None:
        Path(log_dir).mkdir(exist_ok=True)
        handlers.append(logging.FileHandler(f'{log_dir}/charge_planner.log'))
    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        handlers=handlers
    )
    logging.getLogger('aiohttp').setLevel(logging.WARNING)
    logging.getLogger('asyncio').setLevel(logging.WARNING)


class ChargePlanner:
    """Plans one day of FoxESS charge windows from day-ahead prices"""

    def __init__(self, config: Optional[Config] = None, config_path: str = "config.yaml"):
        self.config = config if config is not None else Config(config_path)
        self.tz = self.config.timezone

        self.price_client = ElprisetClient(self.config['price_area'])
        self.device_client = FoxESSClient(self.config['foxess_token'], self.config['device_sn'])
        self.window_selector = WindowSelector(self.tz)
        self.evaluator = ViabilityEvaluator(self.tz)

        logger.info("Charge planner initialized")

    def resolve_target_date(self, now: Optional[datetime] = None) -> date:
        """Tomorrow once next-day prices are out (after the cutoff hour), else today"""
        now = now or datetime.now(self.tz)
        if now.hour < self.config['plan_cutoff_hour']:
            logger.info(f"Before {self.config['plan_cutoff_hour']:02d}:00, tomorrow's prices are not "
                        f"published yet - planning for today")
            return now.date()
        return now.date() + timedelta(days=1)

    def build_schedule(self, prices: List[PriceSlot]) -> Schedule:
        return self.window_selector.select_windows(prices, self.config.charge_ranges, self.config.block_lengths)

    def decide(self, prices: List[PriceSlot]) -> DeviceSchedule:
        """Device schedule to send: the charge windows if worth it, otherwise disabled"""
        schedule = self.build_schedule(prices)
        logger.info(f"Calculated charging windows: AM {schedule.am_window}, PM {schedule.pm_window}")

        report = self.evaluator.evaluate(prices, self.config.discharge_ranges, schedule, self.config.battery)
        if not report.worth_it:
            logger.info("Charging is not economically worth it - disabling charge windows")
            return DeviceSchedule.disabled()

        logger.info(f"Charging is worth it: margin {report.margin:.4f} SEK/kWh")
        return DeviceSchedule.from_schedule(schedule, self.tz)

    async def plan_for_day(self, target_date: date, dry_run: bool = False) -> DeviceSchedule:
        """Main planning run for a given day"""
        logger.info(f"{'=' * 50}")
        logger.info(f"🔋 Charge planning for {target_date}" + (" [DRY RUN]" if dry_run else ""))
        logger.info(f"{'=' * 50}")

        prices = await self.price_client.get_day_prices(target_date)
        device_schedule = self.decide(prices)

        if dry_run:
            logger.info(f"[DRY RUN] Would send schedule: {device_schedule}")
        else:
            await self.device_client.set_charge_windows(device_schedule)
            logger.info("Successfully updated charging windows on Fox ESS")
        return device_schedule

    async def run_once(self, target_date: Optional[date] = None, dry_run: bool = False) -> DeviceSchedule:
        """Run planning once (defaults to the next day with published prices)"""
        try:
            if target_date is None:
                target_date = self.resolve_target_date()
            return await self.plan_for_day(target_date, dry_run=dry_run)
        finally:
            await self.close()

    async def close(self):
        await self.price_client.close()
        await self.device_client.close()


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Fox Charge Planner - Programs FoxESS charge windows from day-ahead electricity prices"
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        metavar="YYYY-MM-DD",
        help="Plan for this date instead of the next day with published prices."
    )
    parser.add_argument(
        "--dry-run",
        "-d",
        action="store_true",
        help="Run in dry run mode without sending the schedule to the device."
    )
    parser.add_argument(
        "--config",
        default="config.yaml",
        help="Path to the YAML config file (default: config.yaml)."
    )
    return parser.parse_args(argv)


async def run(args: argparse.Namespace) -> None:
    planner = ChargePlanner(config_path=args.config)
    await planner.run_once(args.date, dry_run=args.dry_run)


def main(argv: Optional[List[str]] = None) -> int:
    setup_logging()
    args = parse_args(argv)
    logger.info(f"Starting charge planner at {datetime.now().isoformat()}")
    try:
        asyncio.run(run(args))
    except Exception as e:
        logger.exception(f"Charge planning failed: {e}")
        return 1
    finally:
        logger.info(f"Charge planner finished at {datetime.now().isoformat()}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
