"""
Liveness probe for a locally running server.
Usage: python check_alive.py [port ...]
"""
import asyncio
import sys

import httpx


async def check_health(ports):
    for port in ports:
        url = f"http://localhost:{port}/health"
        print(f"Testing {url}...")
        try:
            async with httpx.AsyncClient() as client:
                resp = await client.get(url, timeout=2.0)
        except httpx.RequestError:
            print(f"   Port {port}: No connection")
            continue
        if resp.status_code == 200:
            data = resp.json()
            print(f"ALIVE on port {port} (n8n: {data.get('n8n_connection')})")
            return True
        print(f"   Port {port}: HTTP {resp.status_code}")
    return False


if __name__ == "__main__":
    ports = [int(p) for p in sys.argv[1:]] or [8000, 8001]
    sys.exit(0 if asyncio.run(check_health(ports)) else 1)
