import argparse
import csv
import os
from datetime import datetime
from typing import List, Optional

from delivery.engine import build_delivery_clusters
from delivery.policy import default_clustering_policy, rural_policy, urban_policy
from establishments.policy import default_slot_config
from kitchen.launch import launch_for_order
from kitchen.prep_time import PrepTimeEstimator
from orders.models import Order, OrderStatus, OrderType, SlotWindow
from orders.store import InMemoryOrderStore

POLICIES = {
    "default": default_clustering_policy,
    "urban": urban_policy,
    "rural": rural_policy,
}

def _optional_float(value: str) -> Optional[float]:
    return float(value) if value not in (None, "") else None

def load_orders_csv(filepath="mock_delivery_orders.csv", limit=None) -> List[Order]:
    """
    Reads the CSV written by generate_mock_orders.py.
    Rows with missing coordinates are kept: the clustering engine reports them as excluded.
    """
    orders = []

    # Resolve the correct path depending on where the user runs the script from.
    base_dir = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))
    absolute_path = filepath if os.path.isabs(filepath) else os.path.join(base_dir, filepath)

    with open(absolute_path, 'r') as file:
        reader = csv.DictReader(file)
        for row in reader:
            if limit is not None and len(orders) >= limit: break

            lat = _optional_float(row.get('dropoff_lat'))
            lon = _optional_float(row.get('dropoff_lon'))
            travel = _optional_float(row.get('travel_minutes'))

            orders.append(
                Order(
                    id=row['order_id'],
                    establishment_id=row['establishment_id'],
                    order_type=OrderType(row['order_type']),
                    status=OrderStatus(row['status']),
                    created_at=datetime.fromisoformat(row['created_at']),
                    slot=SlotWindow(
                        start=datetime.fromisoformat(row['slot_start']),
                        end=datetime.fromisoformat(row['slot_end']),
                    ),
                    destination=(lat, lon) if lat is not None and lon is not None else None,
                    delivery_address=row.get('delivery_address') or None,
                    estimated_travel_minutes=int(travel) if travel is not None else None,
                )
            )
    return orders

def run_simulation(filepath="mock_delivery_orders.csv", policy_name="default", limit=None):
    orders = load_orders_csv(filepath, limit=limit)
    if not orders:
        print("No orders loaded.")
        return

    establishment_id = orders[0].establishment_id
    store = InMemoryOrderStore()
    for order in orders:
        store.add(order)

    config = default_slot_config()
    prep = PrepTimeEstimator(store).current_prep_minutes(establishment_id, include_confirmed=True)
    policy = POLICIES[policy_name]()

    print(f"--- Clustering {len(orders)} orders for {establishment_id} ({policy_name} policy) ---")
    print(f"Current prep time: {prep} min, buffer: {config.buffer_minutes} min")

    result = build_delivery_clusters(
        store.delivery_candidates(establishment_id),
        current_prep_minutes=prep,
        buffer_minutes=config.buffer_minutes,
        policy=policy,
    )

    for cluster in sorted(result.clusters, key=lambda c: c.suggested_departure):
        print(
            f"\n{cluster.key}: {cluster.size} stop(s), {cluster.total_travel_minutes} min route\n"
            f"  window    {cluster.common_window.start:%H:%M}-{cluster.common_window.end:%H:%M}\n"
            f"  cook at   {cluster.suggested_kitchen_launch:%H:%M}, leave at {cluster.suggested_departure:%H:%M}\n"
            f"  orders    {', '.join(cluster.order_ids)}"
        )

    # Per-order launch for comparison: what the kitchen would do without grouping
    solo_launches = [
        launch_for_order(o, prep, config.buffer_minutes)
        for o in orders if o.slot is not None and o.estimated_travel_minutes is not None
    ]

    multi = [c for c in result.clusters if c.size > 1]
    print("\n--- Summary ---")
    print(f"Clusters:            {len(result.clusters)} ({len(multi)} with 2+ stops)")
    print(f"Orders grouped:      {sum(c.size for c in multi)}")
    print(f"Excluded (no geo):   {len(result.excluded_orders)}")
    print(f"Kitchen launches:    {len(solo_launches)} solo vs {len(result.clusters)} grouped")

if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Run delivery clustering on a mock order CSV.")
    parser.add_argument("--file", default="mock_delivery_orders.csv")
    parser.add_argument("--policy", choices=sorted(POLICIES), default="default")
    parser.add_argument("--limit", type=int, default=None)
    args = parser.parse_args()

    run_simulation(args.file, args.policy, args.limit)
