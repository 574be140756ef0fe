"""Seed a demo account and a few months of expenses through the API."""

import os
import sys
from pathlib import Path

import httpx
import psycopg

DATABASE_URL = os.environ.get("DATABASE_URL", "")
API_BASE = os.environ.get("API_BASE", "http://localhost:8000")
DEMO_EMAIL = "demo@budgetshrooms.local"
DEMO_PASSWORD = "mushrooms"
SCHEMA_PATH = Path(__file__).with_name("schema.sql")

SAMPLE_EXPENSES = [
    {"amount": "12.50", "occurred_at": "2026-01-03T18:20:00Z", "note": "Groceries"},
    {"amount": "8.75", "occurred_at": "2026-01-05T19:05:00Z", "note": "Lunch"},
    {"amount": "1200.00", "occurred_at": "2026-01-01T15:00:00Z", "note": "January rent"},
    {"amount": "45.00", "occurred_at": "2026-01-07T22:40:00Z", "note": "Airport ride"},
    {"amount": "15.99", "occurred_at": "2026-01-14T03:10:00Z", "note": "Streaming subscription"},
    # 00:30 UTC on Feb 1 is still January 31 in Winnipeg.
    {"amount": "22.00", "occurred_at": "2026-02-01T00:30:00Z", "note": "Friday dinner"},
    {"amount": "85.00", "occurred_at": "2026-02-02T16:00:00Z", "note": "Electric bill"},
    {"amount": "1200.00", "occurred_at": "2026-02-01T15:00:00Z", "note": "February rent"},
    {"amount": "67.80", "occurred_at": "2026-02-15T01:30:00Z", "note": "Valentine's dinner"},
    {"amount": "10.10", "occurred_at": "2026-03-09T14:00:00Z", "note": "Coffee beans"},
    {"amount": "10.10", "occurred_at": "2026-03-10T14:00:00Z", "note": "Coffee beans"},
    {"amount": "10.10", "occurred_at": "2026-03-11T14:00:00Z", "note": "Coffee beans"},
]


def main():
    if not DATABASE_URL:
        print("ERROR: DATABASE_URL env var is not set")
        sys.exit(1)

    print("Applying schema...")
    with psycopg.connect(DATABASE_URL, autocommit=True) as conn:
        conn.execute(SCHEMA_PATH.read_text())

    with httpx.Client(base_url=API_BASE) as client:
        credentials = {"email": DEMO_EMAIL, "password": DEMO_PASSWORD}
        resp = client.post("/auth/register", json={**credentials, "name": "Demo"})
        if resp.status_code == 409:
            resp = client.post("/auth/login", json=credentials)
        if resp.status_code not in (200, 201):
            print(f"ERROR: could not sign in ({resp.status_code}): {resp.text}")
            sys.exit(1)
        print(f"  Signed in as {DEMO_EMAIL}")

        client.put("/budget", json={"amount": "2000.00"})

        success = 0
        errors = 0
        for expense in SAMPLE_EXPENSES:
            resp = client.post("/expenses", json=expense)
            if resp.status_code == 201:
                success += 1
                print(f"  OK: ${expense['amount']:>8s}  {expense['note']:24s}  {resp.json()['occurred_label']}")
            else:
                errors += 1
                print(f"  FAIL ({resp.status_code}): {resp.text}")

    print(f"\nDone! {success} created, {errors} errors.")


if __name__ == "__main__":
    main()
