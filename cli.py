import logging
import os
import sys

from src.exporters import export_requirements_csv
from src.stock_lib import (
    InventoryStore,
    MemoryStorage,
    StockError,
    aggregate_requirements,
    import_inventory,
    parse_import_text,
    reconcile_project,
)
from src.stock_lib.reconciler import format_breakdown

STATUS_MARKS = {"missing": "❌", "low": "⚠️ ", "sufficient": "✅"}


def load_snapshot(path="data/inventory.json"):
    """Reads an exported JSON file into a fresh in-memory store."""
    if not os.path.exists(path):
        print(f"❌ Missing file: '{path}'. Export your inventory from the app first.")
        sys.exit(1)

    with open(path, "r", encoding="utf-8") as f:
        text = f.read()

    store = InventoryStore(MemoryStorage())
    try:
        # Runs the same clean-up, repair and merge as an import in the app
        stats = import_inventory(store, parse_import_text(text, filename=path))
    except StockError as e:
        print(f"❌ Could not read '{path}': {e.message}")
        sys.exit(1)

    print(f"📂 Loaded {len(store.inventory)} parts, {len(store.projects)} projects")
    if stats["merged"]:
        print(f"   merged {stats['merged']} duplicate part(s)")
    return store


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    # 1. Ingest
    source = sys.argv[1] if len(sys.argv) > 1 else "data/inventory.json"
    store = load_snapshot(source)

    # 2. Per-project check
    for project_id, project in store.projects.items():
        report = reconcile_project(project, store.inventory)
        print(f"\n--- {project['name']} ---")
        print(
            f"OK: {report['sufficient_count']} | Low: {report['low_count']} "
            f"| Missing: {report['missing_count']}"
        )
        for part in report["parts"]:
            if part["status"] == "sufficient":
                continue
            matched = f" (as {part['matched_name']})" if part["matched_name"] else ""
            print(
                f"   {STATUS_MARKS[part['status']]} {part['name']}{matched}: "
                f"have {part['have']}, need {part['need']}"
            )

    # 3. Combined needs
    requirements = aggregate_requirements(store.projects, store.inventory)
    if not requirements:
        print("\n⚠️  No projects to total up.")
        sys.exit(0)

    # 4. Output
    out_dir = "output"
    os.makedirs(out_dir, exist_ok=True)

    csv_path = os.path.join(out_dir, "requirements.csv")
    md_path = os.path.join(out_dir, "requirements.md")

    # Save CSV
    try:
        with open(csv_path, "wb") as f:
            f.write(export_requirements_csv(requirements))
        print(f"\n✅ CSV: {csv_path}")
    except PermissionError:
        print(f"\n❌ Error: Close {csv_path} first.")

    # Save Markdown
    try:
        with open(md_path, "w", encoding="utf-8") as f:
            f.write("# Parts Needed\n\n")
            f.write("| Status | Part | Need | Have | Projects |\n")
            f.write("| :---: | --- | :---: | :---: | --- |\n")
            for req in requirements.values():
                f.write(
                    f"| {STATUS_MARKS[req['status']].strip()} | **{req['name']}** "
                    f"| {req['total']} | {req['inventory_qty']} | {format_breakdown(req)} |\n"
                )
        print(f"✅ MD:  {md_path}")
    except PermissionError:
        print(f"\n❌ Error: Close {md_path} first.")

    print("\nDone.")
