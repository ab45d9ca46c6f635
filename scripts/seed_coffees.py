#!/usr/bin/env python3
"""
Seed the knowledge base with demo coffees through the running API.

Run from project root after starting the backend (uvicorn ragchat.main:app):

    python scripts/seed_coffees.py
    python scripts/seed_coffees.py --api http://localhost:8000 --only Yirgacheffe

Edit SEED_COFFEES below to add or change demo records.
"""

import argparse
import sys

import requests

SEED_COFFEES = [
    {
        "origin": "Ethiopia",
        "name": "Yirgacheffe",
        "tasteNotes": ["floral", "citrus"],
        "roastDate": "2024-01-01",
        "roaster": "Acme",
    },
    {
        "origin": "Colombia",
        "name": "Huila Supremo",
        "tasteNotes": ["caramel", "red apple", "cocoa"],
        "roastDate": "2024-02-12",
        "roaster": "Northside Roasters",
    },
    {
        "origin": "Kenya",
        "name": "Nyeri AA",
        "tasteNotes": ["blackcurrant", "grapefruit"],
        "roastDate": "2024-03-05",
        "roaster": "Acme",
    },
]


def main() -> int:
    parser = argparse.ArgumentParser(description="Ingest demo coffees via POST /ingest.")
    parser.add_argument("--api", default="http://localhost:8000", help="Backend base URL.")
    parser.add_argument("--only", help="Ingest only the coffee with this name.")
    args = parser.parse_args()

    coffees = [c for c in SEED_COFFEES if not args.only or c["name"] == args.only]
    if not coffees:
        print(f"No seed coffee named {args.only!r}.")
        return 1

    failed = 0
    for coffee in coffees:
        r = requests.post(f"{args.api}/ingest", json=coffee, timeout=60)
        if r.status_code == 204:
            print(f"  ingested: {coffee['name']}")
        else:
            failed += 1
            print(f"  failed:   {coffee['name']} ({r.status_code}: {r.text[:200]})")

    print(f"Done. Ingested {len(coffees) - failed}/{len(coffees)} coffees.")
    return 1 if failed else 0


if __name__ == "__main__":
    sys.exit(main())
