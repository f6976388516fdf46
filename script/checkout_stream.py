#!/usr/bin/env python3
"""
Checkout SSE script
Start a checkout against a running service and print every state transition

Usage:
    python script/checkout_stream.py <tier_id> [currency] [gateway] [quantity]
"""

import asyncio
import sys

import httpx
import orjson


BASE_URL = 'http://localhost:8000'


async def stream_checkout(tier_id: str, currency: str, gateway: str, quantity: int | None) -> None:
    payload = {
        'tier_id': tier_id,
        'currency': currency,
        'gateway': gateway,
        'quantity': quantity,
        'buyer': {'name': 'Ada Obi', 'email': 'ada@example.com', 'phone': '+2348012345678'},
    }
    url = f'{BASE_URL}/api/checkout'

    print(f'🔗 Starting checkout: {url}')
    print('=' * 80)

    async with httpx.AsyncClient(timeout=None) as client:
        async with client.stream('POST', url, json=payload) as response:
            print(f'✅ Connected! Status: {response.status_code}')
            if response.status_code != 200:
                print(await response.aread())
                return

            async for line in response.aiter_lines():
                if not line.startswith('data:'):
                    continue
                event = orjson.loads(line.split(':', 1)[1].strip())
                state = event['state']

                if state == 'awaiting_gateway':
                    print(f'💳 {state}: open {event.get("authorization_url")} to pay')
                elif state == 'issued':
                    print(f'🎫 {state}: order={event["order_id"]}')
                    for scan_payload in event.get('tickets', []):
                        print(f'      {scan_payload}')
                elif 'error' in event:
                    print(f'❌ {state}: {event["error"]}')
                else:
                    print(f'📦 {state}: {event}')

    print('=' * 80)


if __name__ == '__main__':
    if len(sys.argv) < 2:
        print(__doc__)
        exit(1)
    args = sys.argv[1:]
    try:
        asyncio.run(
            stream_checkout(
                tier_id=args[0],
                currency=args[1] if len(args) > 1 else 'NGN',
                gateway=args[2] if len(args) > 2 else 'paystack',
                quantity=int(args[3]) if len(args) > 3 else None,
            )
        )
    except KeyboardInterrupt:
        print('\n🛑 Stopped by user')
