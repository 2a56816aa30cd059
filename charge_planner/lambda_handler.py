"""
AWS Lambda handler for the Fox Charge Planner

Triggered by an EventBridge schedule each afternoon, after next-day prices are
published, to program tomorrow's charge windows. Runs once and exits.
"""

import asyncio
import json
import logging
import os
from datetime import date, datetime
from typing import Optional

# Configure logging for CloudWatch - let CloudWatch handle timestamps
logger = logging.getLogger()
logger.setLevel(logging.INFO)

# Remove default handlers
for handler in list(logger.handlers):
    logger.removeHandler(handler)

handler = logging.StreamHandler()
formatter = logging.Formatter('%(levelname)s %(message)s')
handler.setFormatter(formatter)
logger.addHandler(handler)

# Suppress noisy loggers
logging.getLogger('aiohttp').setLevel(logging.WARNING)
logging.getLogger('asyncio').setLevel(logging.WARNING)


TRUE_VALUES = ('true', '1', 'yes')
FALSE_VALUES = ('false', '0', 'no', '')


def parse_flag(value) -> bool:
    """Read a boolean event field that may arrive as a string"""
    if isinstance(value, bool):
        return value
    text = str(value).strip().lower()
    if text in TRUE_VALUES:
        return True
    if text in FALSE_VALUES:
        return False
    raise ValueError(f"not a boolean: {value!r}")


async def run_planning(config_path: str, target_date: Optional[date], dry_run: bool) -> dict:
    """
    Async planning runner - must be called within the event loop
    so aiohttp can create its sessions properly.
    """
    from charge_planner.planner import ChargePlanner

    planner = ChargePlanner(config_path=config_path)
    schedule = await planner.run_once(target_date, dry_run=dry_run)
    return {
        'success': True,
        'timestamp': datetime.now().isoformat(),
        'charging_enabled': schedule.enable1 or schedule.enable2,
        'schedule': schedule.to_payload(),
        'message': 'Planning completed',
    }


def lambda_handler(event, context):
    """
    AWS Lambda entry point for charge planning.

    Event parameters (all optional):
    - config_path: Override config file path (default: 'config.yaml')
    - date: Plan for this ISO date instead of the next day with published prices
    - dry_run: Log the schedule without sending it

    Environment variables (required):
    - FOXESS_TOKEN: FoxESS Cloud API key
    - DEVICE_SN: Inverter serial number
    """
    logger.info(f"Lambda invoked with event: {json.dumps(event)}")

    config_path = event.get('config_path', 'config.yaml')
    try:
        dry_run = parse_flag(event.get('dry_run', False))
    except ValueError as e:
        error_msg = f"Invalid dry_run: {e}"
        logger.error(error_msg)
        return {
            'statusCode': 400,
            'body': json.dumps({'success': False, 'error': error_msg})
        }

    required_env = ['FOXESS_TOKEN', 'DEVICE_SN']
    missing = [var for var in required_env if not os.environ.get(var)]
    if missing:
        error_msg = f"Missing required environment variables: {missing}"
        logger.error(error_msg)
        return {
            'statusCode': 400,
            'body': json.dumps({'success': False, 'error': error_msg})
        }

    try:
        target_date = date.fromisoformat(event['date']) if event.get('date') else None
        result = asyncio.run(run_planning(config_path, target_date, dry_run))

        response = {
            'statusCode': 200,
            'body': json.dumps(result)
        }
        logger.info(f"Lambda completed: {response}")
        return response

    except Exception as e:
        logger.exception(f"Lambda execution failed: {e}")
        return {
            'statusCode': 500,
            'body': json.dumps({
                'success': False,
                'error': str(e),
                'error_type': type(e).__name__
            })
        }


# For local testing
if __name__ == "__main__":
    test_event = {'dry_run': True}
    result = lambda_handler(test_event, None)
    print(json.dumps(result, indent=2))
