import pandas as pd
import numpy as np
from datetime import datetime, timezone, timedelta

from routing.geo import haversine_km, estimate_travel_minutes

def generate_mock_orders(num_orders=60, establishment_id="resto-mons", slot_minutes=15,
                         missing_geo_ratio=0.05, output_file="mock_delivery_orders.csv"):
    """
    Generates a realistic evening of delivery orders for one establishment, designed
    to test clustering. Destinations are drawn around a few neighbourhoods so that
    several orders land close together, and slots are spread over the next two hours
    so that only some of them overlap in time.
    A small share of rows has no coordinates, like an address the geocoder could not resolve.
    """
    # Mons, Belgium (default establishment location)
    CENTER_LAT = 50.4667
    CENTER_LON = 3.9167

    # 1. Neighbourhood centres within ~4km (roughly 0.035 degrees)
    neighbourhoods = [
        (CENTER_LAT + np.random.uniform(-0.035, 0.035), CENTER_LON + np.random.uniform(-0.035, 0.035))
        for _ in range(6)
    ]

    now = datetime.now(timezone.utc).replace(second=0, microsecond=0)
    first_slot = now + timedelta(minutes=slot_minutes - now.minute % slot_minutes)
    data = []

    # 2. Generate Orders
    for order_index in range(num_orders):
        hood_lat, hood_lon = neighbourhoods[np.random.randint(len(neighbourhoods))]

        # Destinations within ~500m of the neighbourhood centre
        lat = hood_lat + np.random.uniform(-0.004, 0.004)
        lon = hood_lon + np.random.uniform(-0.006, 0.006)

        slot_start = first_slot + timedelta(minutes=slot_minutes * np.random.randint(0, 8))
        slot_end = slot_start + timedelta(minutes=slot_minutes)
        travel = estimate_travel_minutes(haversine_km((CENTER_LAT, CENTER_LON), (lat, lon)))

        missing_geo = np.random.random() < missing_geo_ratio

        data.append({
            "order_id": f"o_{str(order_index+1).zfill(5)}",
            "establishment_id": establishment_id,
            "created_at": (now - timedelta(minutes=np.random.randint(0, 90))).isoformat(),
            "order_type": "delivery",
            "status": np.random.choice(["confirmed", "ready"], p=[0.7, 0.3]),
            "slot_start": slot_start.isoformat(),
            "slot_end": slot_end.isoformat(),
            "dropoff_lat": None if missing_geo else np.round(lat, 6),
            "dropoff_lon": None if missing_geo else np.round(lon, 6),
            "travel_minutes": None if missing_geo else travel,
            "delivery_address": f"Rue {np.random.randint(1, 200)}, 7000 Mons",
        })

    # 3. Save to CSV
    df = pd.DataFrame(data)
    df.to_csv(output_file, index=False)
    print(f"✅ Generated {num_orders} delivery orders and saved to '{output_file}'")

    # Quick preview of temporal density
    print("\nOrders per slot:")
    counts = df['slot_start'].value_counts().sort_index()
    for start, count in counts.items():
        print(f"  {start}: {count} orders")
    print(f"\nRows without coordinates: {int(df['dropoff_lat'].isna().sum())}")

if __name__ == "__main__":
    generate_mock_orders(num_orders=60)
