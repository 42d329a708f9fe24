from __future__ import annotations

import asyncio

from castbot.bootstrap import build_services
from castbot.settings import get_settings


async def _run() -> None:
    services = build_services(get_settings())
    try:
        results = await services.notifier.run_due_once()
    finally:
        await services.messenger.close()

    sent = sum(1 for r in results if r["status"] == "sent")
    print(f"processed={len(results)}")
    print(f"sent={sent}")
    for r in results:
        if r["status"] != "sent":
            print(f"failed id={r['id']} error={r.get('error')}")


def main() -> None:
    asyncio.run(_run())


if __name__ == "__main__":
    main()
