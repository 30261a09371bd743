#!/usr/bin/env python3
"""Quick live check of the Aryeo token and include negotiation.

Run (needs ARYEO_API_TOKEN in the environment or .env):
  python scripts/aryeo_live_check.py            # first page of orders
  python scripts/aryeo_live_check.py ORDER_ID   # one order, normalized
"""

import asyncio
import logging
import sys

from aryeo_shoots.cache import ORDER_FALLBACK_INCLUDES
from aryeo_shoots.config import Settings
from aryeo_shoots.connectors.aryeo import AryeoConnector


async def _check(order_id: str | None) -> int:
    settings = Settings()
    connector = AryeoConnector.from_settings(settings)
    try:
        if order_id:
            shoot = await connector.fetch_shoot(
                order_id,
                include=settings.ARYEO_ORDER_INCLUDES,
                fallback_includes=ORDER_FALLBACK_INCLUDES,
            )
            print(f"{shoot.id}: {shoot.status} | {shoot.address} | {len(shoot.photos)} photos")
            return 1

        order_page = await connector.list_orders(
            1,
            5,
            include=settings.ARYEO_ORDER_INCLUDES,
            fallback_includes=ORDER_FALLBACK_INCLUDES,
        )
        print(f"Got {len(order_page.orders)} orders ({order_page.item_count} entries) from {connector.api_base}")
        for i, raw in enumerate(order_page.orders, 1):
            shoot = connector.normalize(raw)
            print(f"  {i}. {shoot.address} [{shoot.status}] (id={shoot.id}, photos={len(shoot.photos)})")
        return len(order_page.orders)
    finally:
        await connector.aclose()


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    count = asyncio.run(_check(sys.argv[1] if len(sys.argv) > 1 else None))
    if count:
        print("\nToken and include negotiation OK.")
    else:
        print("\nNo orders returned. Check the include warnings above.")


if __name__ == "__main__":
    main()
