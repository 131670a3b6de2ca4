"""
Device simulator - sends a trail of location reports to a running API.

This script behaves like the GPS tracker in the field:
1. Walks a short random route starting from a fixed point
2. Reports each position with GET /update_location?lat=..&lon=..
3. Reads back the latest position and the route history
4. Optionally trims the history with DELETE /cleanup

Usage:
    python scripts/simulate_device.py
    python scripts/simulate_device.py --count 150 --cleanup   # overflow the cap, then trim
    python scripts/simulate_device.py --api http://localhost:2000 --delay 1.0
"""
import argparse
import random
import time

import requests

# Hong Kong Central - start of the simulated route
START_LOCATION = {
    "lat": 22.2819,
    "lon": 114.1582
}

API_URL = "http://localhost:2000"

# Max step between two fixes, in degrees (~50m)
STEP_DEGREES = 0.0005


def main():
    parser = argparse.ArgumentParser(description="Simulate a GPS tracker reporting positions")
    parser.add_argument("--api", default=API_URL, help=f"API base URL (default: {API_URL})")
    parser.add_argument("--count", type=int, default=20, help="Number of reports to send (default: 20)")
    parser.add_argument("--delay", type=float, default=0.1, help="Seconds between reports (default: 0.1)")
    parser.add_argument("--cleanup", action="store_true", help="Call DELETE /cleanup after reporting")
    args = parser.parse_args()

    print("=" * 60)
    print("GPS TRACKER - Device Simulator")
    print("=" * 60)
    print(f"API:      {args.api}")
    print(f"Reports:  {args.count}")
    print()

    # Check API is running
    try:
        response = requests.get(f"{args.api}/health", timeout=5)
        if response.status_code != 200:
            print("ERROR: API not healthy")
            return
        print(f"API is running (database: {response.json().get('database')})")
    except requests.ConnectionError:
        print("ERROR: Cannot connect to API at", args.api)
        print("Make sure to run: python -m src.tracker.main")
        return

    print()
    print("Sending reports...")
    print()

    lat, lon = START_LOCATION["lat"], START_LOCATION["lon"]
    for i in range(1, args.count + 1):
        lat += random.uniform(-STEP_DEGREES, STEP_DEGREES)
        lon += random.uniform(-STEP_DEGREES, STEP_DEGREES)

        response = requests.get(
            f"{args.api}/update_location",
            params={"lat": f"{lat:.6f}", "lon": f"{lon:.6f}"},
            timeout=5,
        )
        if response.status_code != 200:
            print(f"  #{i:03d}: FAILED ({response.status_code}) {response.json().get('error')}")
            continue

        data = response.json()
        print(f"  #{i:03d}: lat={data['lat']:.6f}, lon={data['lon']:.6f}")
        time.sleep(args.delay)

    print()
    print("-" * 60)

    latest = requests.get(f"{args.api}/get_location", timeout=5).json()
    print("LATEST POSITION:")
    print(f"  Lat:       {latest['lat']}")
    print(f"  Lon:       {latest['lon']}")
    print(f"  Timestamp: {latest.get('timestamp', 'N/A')}")
    print()

    history = requests.get(f"{args.api}/get_all_locations", timeout=5).json()
    print(f"HISTORY: {len(history)} records stored")

    if args.cleanup:
        result = requests.delete(f"{args.api}/cleanup", timeout=10).json()
        print(f"CLEANUP: deleted {result['deleted']} old records")
        history = requests.get(f"{args.api}/get_all_locations", timeout=5).json()
        print(f"HISTORY: {len(history)} records after cleanup")

    print("=" * 60)


if __name__ == "__main__":
    main()
