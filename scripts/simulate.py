"""
Load Simulation Script

Fires concurrent catalog traffic at a running API to exercise search,
filtering, pagination and the rate limiter.
Run from project root: python scripts/simulate.py --email admin@example.com --password ...

The admin account must already exist (see scripts/create_admin.py).
"""

import argparse
import asyncio
import random
import sys
import time
from collections import Counter
from datetime import datetime
from typing import Any, Optional

import httpx

# Configuration
API_BASE_URL = "http://localhost:3000"
TOTAL_REQUESTS = 200

SEED_ITEMS = [
    {"name": "Jollof Rice", "price": 2500, "category": "SPECIAL",
     "description": "Smoky party jollof", "ingredients": "rice, tomato, pepper"},
    {"name": "Egusi Soup", "price": 3200, "category": "SOUPS & SWALLOW",
     "description": "Melon seed soup with assorted meat", "ingredients": "egusi, spinach, beef"},
    {"name": "Goat Meat Pepper Soup", "price": 2800, "category": "PEPPERSOUP CORNER",
     "description": "Spicy goat meat broth", "ingredients": "goat meat, utazi, pepper", "spicyLevel": 4},
    {"name": "Puff Puff", "price": 500, "category": "APPETIZERS",
     "description": "Sweet fried dough balls", "ingredients": "flour, sugar, yeast"},
    {"name": "Chin Chin", "price": 700, "category": "DESSERT",
     "description": "Crunchy fried snack", "ingredients": "flour, milk, sugar"},
    {"name": "Zobo", "price": 400, "category": "BEVERAGE",
     "description": "Hibiscus drink with ginger", "ingredients": "hibiscus, ginger, pineapple"},
    {"name": "Akara and Pap", "price": 1200, "category": "BREAKFAST MENU",
     "description": "Bean fritters with corn pudding", "ingredients": "beans, pepper, onion, corn"},
    {"name": "Agege Bread and Beans", "price": 1500, "category": "BREAD LOVERS CORNER",
     "description": "Soft bread with stewed beans", "ingredients": "bread, beans, palm oil"},
]

SEARCH_TERMS = ["rice", "pepper", "soup", "sweet", "beans", "ginger", "goat"]
CATEGORIES = ["special", "SOUPS & SWALLOW", "dessert", "beverage", "appetizers"]


def random_list_params() -> dict[str, Any]:
    """Random mix of search, filter, sort and paging parameters."""
    params: dict[str, Any] = {}
    roll = random.random()
    if roll < 0.35:
        params["q"] = random.choice(SEARCH_TERMS)
    elif roll < 0.7:
        params["category"] = random.choice(CATEGORIES)
    if random.random() < 0.3:
        params["minPrice"] = random.choice([0, 500, 1000])
        params["maxPrice"] = random.choice([1500, 3000, 5000])
    params["sortBy"] = random.choice(["price", "name", "createdAt", "bogus"])
    params["sortOrder"] = random.choice(["asc", "desc"])
    params["limit"] = random.choice([5, 10, 100])
    if random.random() < 0.1:
        params["includeMeta"] = "true"
    return params


async def login(client: httpx.AsyncClient, email: str, password: str) -> Optional[str]:
    response = await client.post(
        f"{API_BASE_URL}/api/v1/auth/login",
        json={"email": email, "password": password},
    )
    if response.status_code != 200:
        print(f"   ❌ Login failed ({response.status_code}): {response.text[:100]}")
        return None
    return response.json().get("token")


async def seed_menu(client: httpx.AsyncClient, token: str) -> int:
    """Create the sample items; existing names are skipped (409)."""
    created = 0
    headers = {"Authorization": f"Bearer {token}"}
    for item in SEED_ITEMS:
        response = await client.post(f"{API_BASE_URL}/api/v1/menu", json=item, headers=headers)
        if response.status_code == 201:
            created += 1
        elif response.status_code != 409:
            print(f"   ⚠️ {item['name']}: {response.status_code} {response.text[:100]}")
    return created


async def send_list_request(client: httpx.AsyncClient, request_num: int) -> dict[str, Any]:
    """Send one listing request and record the outcome."""
    params = random_list_params()
    start_time = time.time()
    try:
        response = await client.get(f"{API_BASE_URL}/api/v1/menu", params=params, timeout=30.0)
        elapsed = round(time.time() - start_time, 3)
        result = {
            "request_num": request_num,
            "status": response.status_code,
            "time": elapsed,
            "search": "q" in params,
        }
        if response.status_code == 200:
            result["items"] = len(response.json().get("data", []))
        return result
    except httpx.HTTPError as e:
        return {
            "request_num": request_num,
            "status": "error",
            "error": str(e)[:100],
            "time": round(time.time() - start_time, 3),
            "search": "q" in params,
        }


# =============================================================================
# MAIN SIMULATION RUNNER
# =============================================================================

async def run_simulation(email: str, password: str, num_requests: int = TOTAL_REQUESTS) -> dict[str, Any]:
    print("=" * 70)
    print("🔥 CATALOG LOAD SIMULATION")
    print("=" * 70)
    print(f"📋 Total Requests: {num_requests}")
    print(f"🎯 Target: {API_BASE_URL}")
    print(f"⏰ Started: {datetime.now().strftime('%H:%M:%S')}")
    print("=" * 70)

    async with httpx.AsyncClient() as client:
        print("\n1️⃣ Logging in as admin...")
        token = await login(client, email, password)
        if not token:
            return {"total": 0, "statuses": {}}

        print("\n2️⃣ Seeding menu...")
        created = await seed_menu(client, token)
        print(f"   ✅ {created} new items ({len(SEED_ITEMS) - created} already present)")

        print("\n3️⃣ Firing concurrent listing requests...\n")
        start_time = time.time()
        tasks = [send_list_request(client, i + 1) for i in range(num_requests)]
        results = await asyncio.gather(*tasks)
        total_time = round(time.time() - start_time, 2)

    statuses = Counter(r["status"] for r in results)
    ok = [r for r in results if r["status"] == 200]

    print("\n" + "=" * 70)
    print("📊 SIMULATION RESULTS")
    print("=" * 70)
    for code, count in sorted(statuses.items(), key=lambda pair: str(pair[0])):
        print(f"   {code}: {count}")
    print(f"⏱️  Total Time: {total_time}s")

    if ok:
        avg_time = round(sum(r["time"] for r in ok) / len(ok), 3)
        searches = [r for r in ok if r["search"]]
        print("\n📈 Performance Metrics:")
        print(f"   Average Response: {avg_time}s")
        print(f"   Fastest: {min(r['time'] for r in ok)}s")
        print(f"   Slowest: {max(r['time'] for r in ok)}s")
        print(f"   Searches: {len(searches)} ({sum(r['items'] for r in searches)} items returned)")

    if statuses.get(429):
        print(f"\n🛑 Rate limiter engaged for {statuses[429]} requests")

    print("=" * 70)
    return {"total": num_requests, "statuses": dict(statuses), "total_time": total_time}


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Catalog load simulation")
    parser.add_argument("--email", required=True, help="Admin email")
    parser.add_argument("--password", required=True, help="Admin password")
    parser.add_argument("--requests", type=int, default=TOTAL_REQUESTS, help="Number of listing requests")
    parser.add_argument("--base-url", default=API_BASE_URL, help="API base URL")
    args = parser.parse_args()

    API_BASE_URL = args.base_url.rstrip("/")
    summary = asyncio.run(run_simulation(args.email, args.password, args.requests))
    if not summary["total"]:
        sys.exit(1)
