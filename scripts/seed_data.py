#!/usr/bin/env python3
"""
Seed script: creates users, exchange points, items and a few transactions via the API (no direct DB).
Users are scattered around one city so radius queries return something.
Run: API must be running. For ES indexing and mail outbox rows, run the Celery worker as well.
  python scripts/seed_data.py
  python scripts/seed_data.py --users 50 --items-per-user 10 --lat 52.37 --lon 4.89
"""

import argparse
import random
import sys
from pathlib import Path

sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

import httpx

API_BASE = "http://localhost:8000/api/v1"
PASSWORD = "password123"

ITEMS = [
    ("Cordless drill", ["Tools"]),
    ("Ladder 3m", ["Tools", "Garden"]),
    ("Camping tent", ["Outdoor"]),
    ("Board game: Catan", ["Games", "Toys"]),
    ("Sewing machine", ["Kitchen", "Crafts"]),
    ("Pressure washer", ["Tools", "Garden"]),
    ("Python Crash Course", ["Books"]),
    ("The Hobbit", ["Books"]),
    ("Baby stroller", ["Kids"]),
    ("Projector", ["Electronics"]),
    ("Stand mixer", ["Kitchen"]),
    ("Snowboard", ["Outdoor", "Sports"]),
]


def jitter(center: float, spread_km: float) -> float:
    # ~111 km per degree; good enough for seeding
    return center + random.uniform(-spread_km, spread_km) / 111.0


def register_and_login(client: httpx.Client, email: str, nickname: str, lat: float, lon: float, role: str) -> dict | None:
    r = client.post(
        "/users/register",
        json={
            "email": email,
            "password": PASSWORD,
            "nickname": nickname,
            "role": role,
            "latitude": lat,
            "longitude": lon,
        },
    )
    if r.status_code not in (200, 201, 409):
        print(f"  register {email}: {r.status_code} {r.text[:80]}")
        return None
    r = client.post("/users/login", json={"email": email, "password": PASSWORD})
    if r.status_code != 200:
        print(f"  login {email}: {r.status_code}")
        return None
    headers = {"Authorization": f"Bearer {r.json()['access_token']}"}
    me = client.get("/users/me", headers=headers).json()
    return {"id": me["id"], "email": email, "headers": headers}


def main():
    ap = argparse.ArgumentParser(description="Seed users, exchange points and items via API")
    ap.add_argument("--users", type=int, default=20)
    ap.add_argument("--exchange-points", type=int, default=3)
    ap.add_argument("--items-per-user", type=int, default=5)
    ap.add_argument("--lat", type=float, default=52.3676)
    ap.add_argument("--lon", type=float, default=4.9041)
    ap.add_argument("--spread-km", type=float, default=8.0)
    ap.add_argument("--base-url", default=API_BASE, help="API base URL")
    args = ap.parse_args()

    created_items = 0
    with httpx.Client(base_url=args.base_url, timeout=30.0) as client:
        print(f"Creating {args.exchange_points} exchange points...")
        points = []
        for i in range(args.exchange_points):
            ep = register_and_login(
                client,
                f"point{i+1}@example.com",
                f"Exchange point {i+1}",
                jitter(args.lat, args.spread_km),
                jitter(args.lon, args.spread_km),
                "exchange_point",
            )
            if ep:
                points.append(ep)

        print(f"Creating {args.users} users with ~{args.items_per_user} items each...")
        users = []
        for i in range(args.users):
            user = register_and_login(
                client,
                f"user{i+1}@example.com",
                f"User {i+1}",
                jitter(args.lat, args.spread_km),
                jitter(args.lon, args.spread_km),
                "user",
            )
            if not user:
                continue
            users.append(user)
            if points and random.random() < 0.5:
                chosen = random.sample(points, k=min(2, len(points)))
                client.patch(
                    "/users/me", headers=user["headers"], json={"exchange_point_ids": [p["id"] for p in chosen]}
                )
            for _ in range(args.items_per_user):
                name, categories = random.choice(ITEMS)
                r = client.post("/items", headers=user["headers"], json={"name": name, "categories": categories})
                if r.status_code == 201:
                    created_items += 1
                    user.setdefault("items", []).append(r.json()["id"])
                else:
                    print(f"  item for {user['email']}: {r.status_code} {r.text[:80]}")

        print("Opening a few borrow requests...")
        requests = 0
        for user in users:
            others = [u for u in users if u is not user and u.get("items")]
            if not others:
                continue
            item_id = random.choice(random.choice(others)["items"])
            r = client.post("/transactions", headers=user["headers"], json={"item_id": item_id})
            if r.status_code == 201:
                requests += 1

    print(f"\nDone. Users: {len(users)}, exchange points: {len(points)}, items: {created_items}, requests: {requests}")
    print("Tip: run the Celery worker to index items in Elasticsearch and fill the mail outbox.")


if __name__ == "__main__":
    main()
