#!/usr/bin/env python3
"""Smoke test against a running API. Verifies /health, record -> stats, analytics, history.

Run with: python scripts/smoke_visits.py
Requires: API running (API_BASE, default http://localhost:8000). Writes one visit.
"""

import os
import sys

import requests

API_BASE = os.getenv("API_BASE", "http://localhost:8000").rstrip("/")
VISITS = f"{API_BASE}/api/visits"


def _ok(resp: requests.Response) -> bool:
    return resp.status_code == 200


def main() -> int:
    failures: list[str] = []

    # 1. GET /health => ok true
    print("1. GET /health ...")
    try:
        r = requests.get(f"{API_BASE}/health", timeout=10)
        if not _ok(r) or not r.json().get("ok"):
            print(f"   FAIL: {r.status_code} {r.text[:200]}")
            return 1
        print("   ok")
    except requests.RequestException as e:
        print(f"   FAIL: {e}")
        return 1

    # 2. GET /stats, POST /record, GET /stats => todayViews grew by at least one
    print("2. record -> stats ...")
    try:
        before = requests.get(f"{VISITS}/stats", timeout=10).json().get("todayViews", 0)
        r = requests.post(
            f"{VISITS}/record",
            json={"page_url": "/smoke", "session_duration": 0},
            headers={"User-Agent": "smoke-visits/1.0"},
            timeout=10,
        )
        if not _ok(r):
            failures.append(f"/record => {r.status_code}")
        else:
            recorded = r.json()
            after = requests.get(f"{VISITS}/stats", timeout=10).json().get("todayViews", 0)
            if after < before + 1:
                failures.append(f"/stats todayViews {before} -> {after} after record")
            if recorded.get("lifetimeViews", 0) < recorded.get("dailyViews", 0):
                failures.append("/record lifetimeViews < dailyViews")
            print(f"   todayViews {before} -> {after}")
    except requests.RequestException as e:
        failures.append(f"record/stats => {e}")

    # 3. GET /analytics?days=7 => 200, debug_info present
    print("3. GET /analytics?days=7 ...")
    try:
        r = requests.get(f"{VISITS}/analytics", params={"days": 7}, timeout=30)
        if not _ok(r):
            failures.append(f"/analytics => {r.status_code}")
        else:
            data = r.json()
            if "debug_info" not in data:
                failures.append("/analytics missing debug_info")
            elif data["debug_info"].get("failed"):
                print(f"   degraded: {data['debug_info']['failed']}")
            print(f"   period_days={data.get('period_days')} unique_visitors={data.get('unique_visitors')}")
    except requests.RequestException as e:
        failures.append(f"/analytics => {e}")

    # 4. GET /history => 200
    print("4. GET /history ...")
    try:
        r = requests.get(f"{VISITS}/history", params={"limit": 5}, timeout=10)
        if not _ok(r):
            failures.append(f"/history => {r.status_code}")
        else:
            print(f"   recordsShown={r.json().get('recordsShown')}")
    except requests.RequestException as e:
        failures.append(f"/history => {e}")

    if failures:
        print("\nFAILURES:", failures)
        return 1
    print("\nSmoke passed.")
    return 0


if __name__ == "__main__":
    sys.exit(main())
