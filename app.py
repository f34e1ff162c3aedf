import os
from typing import Any, Callable, cast

import streamlit as st

from src.exporters import (
    build_export_filename,
    export_inventory_csv,
    export_project_bom_csv,
    export_project_bom_json,
    export_requirements_csv,
    export_snapshot_json,
)
from src.stock_lib import (
    ImportPayload,
    InventoryStore,
    JsonFileStorage,
    MemoryStorage,
    ProjectReport,
    StockError,
    add_missing_parts,
    add_part,
    adjust_quantity,
    all_project_requirements,
    count_tagged_parts,
    create_project,
    delete_part,
    delete_project,
    edit_part,
    filter_inventory,
    import_inventory,
    inventory_rows,
    make_id,
    merge_inventory_duplicates,
    process_input_data,
    project_report,
    reconcile_project,
    remove_part_from_project,
    rename_project,
    requirement_rows,
    summarize_report,
    use_part,
)
from src.stock_lib import constants as C

# Set PEDAL_STOCK_DATA_DIR to keep data between sessions
DATA_DIR = os.environ.get("PEDAL_STOCK_DATA_DIR")

SORT_OPTIONS = {
    "Name (A-Z)": "name-asc",
    "Name (Z-A)": "name-desc",
    "Quantity (Low-High)": "quantity-asc",
    "Quantity (High-Low)": "quantity-desc",
    "Low Stock First": "stock-status",
}

STATUS_ICONS = {
    C.STATUS_MISSING: "❌ Missing",
    C.STATUS_LOW: "⚠️ Low",
    C.STATUS_SUFFICIENT: "✅ OK",
}

INPUT_METHODS = ["Paste Text", "Upload File", "From URL"]


st.set_page_config(page_title="Pedal Parts Inventory", page_icon="🎸", layout="wide")

st.title("🎸 Pedal Parts Inventory")
st.markdown("""
**Keep track of your parts and what your next builds need.**

Add parts by hand or import a CSV/JSON file, compare a project BOM against your
stock, and get a combined shopping list across every project.
""")

if "store" not in st.session_state:
    storage = JsonFileStorage(DATA_DIR) if DATA_DIR else MemoryStorage()
    new_store = InventoryStore(storage)
    try:
        new_store.load()
    except StockError as e:
        st.error(f"Could not load saved data: {e.message}")
        st.stop()
    st.session_state.store = new_store

if "bom_payload" not in st.session_state:
    st.session_state.bom_payload = None

store = cast(InventoryStore, st.session_state.store)


def run_action(action: Callable[..., Any], *args: Any, success: str = "", **kwargs: Any):
    """Runs a store operation, turning library errors into notifications."""
    try:
        result = action(*args, **kwargs)
    except StockError as e:
        st.error(e.message)
        return None
    if success:
        st.toast(success, icon="🎸")
    return result


def part_label(part_id: str) -> str:
    part = store.inventory.get(part_id, {})
    return f"{part.get('name', part_id)} ({part_id})"


def project_label(project_id: str) -> str:
    return store.projects.get(project_id, {}).get("name", project_id)


def input_widget(method: str, key: str) -> Any:
    if method == "Paste Text":
        return st.text_area(
            "Data",
            height=150,
            key=f"{key}_text",
            placeholder="Paste CSV or JSON here...",
        )
    if method == "Upload File":
        return st.file_uploader("File", type=["csv", "json", "txt"], key=f"{key}_file")
    return st.text_input("URL", key=f"{key}_url", placeholder="https://...")


def render_report(report: ProjectReport) -> None:
    split = summarize_report(report)
    c1, c2, c3 = st.columns(3)
    c1.metric("✅ In Stock", report["sufficient_count"])
    c2.metric("⚠️ Low", report["low_count"])
    c3.metric("❌ Missing", report["missing_count"])
    st.progress(int(split[C.STATUS_SUFFICIENT]))

    rows = []
    for part in report["parts"]:
        rows.append(
            {
                "Part": part["name"],
                "Need": part["need"],
                "Have": part["have"],
                "Status": STATUS_ICONS[part["status"]],
                "Matched As": part["matched_name"] or "",
            }
        )
    st.dataframe(rows, use_container_width=True)


tab_inv, tab_proj, tab_req, tab_io = st.tabs(
    ["📦 Inventory", "🧩 Projects", "📊 Requirements", "💾 Import / Export"]
)

# --- Inventory ---

with tab_inv:
    c1, c2, c3 = st.columns(3)
    c1.metric("Parts", len(store.inventory))
    c2.metric("Units", sum(p.get("quantity", 0) for p in store.inventory.values()))
    c3.metric(
        "Low Stock",
        sum(
            1
            for p in store.inventory.values()
            if p.get("quantity", 0) < C.LOW_STOCK_THRESHOLD
        ),
    )

    f1, f2 = st.columns(2)
    sort_label = f1.selectbox("Sort by", list(SORT_OPTIONS), key="inv_sort")
    filter_options = ["all", *store.projects]
    project_filter = f2.selectbox(
        "Project",
        filter_options,
        format_func=lambda pid: (
            "All parts"
            if pid == "all"
            else f"{project_label(pid)} ({count_tagged_parts(store.inventory, pid)})"
        ),
        key="inv_filter",
    )

    visible = filter_inventory(store.inventory, project_filter)
    if visible:
        st.dataframe(
            inventory_rows(visible, store.projects, SORT_OPTIONS[sort_label]),
            column_config={
                "Purchase URL": st.column_config.LinkColumn(
                    "Buy Link", display_text="🛒 Buy"
                ),
            },
            use_container_width=True,
        )
    else:
        st.info("No parts to show.")

    with st.expander("➕ Add Part"):
        with st.form("add_part_form", clear_on_submit=True):
            a1, a2 = st.columns(2)
            new_name = a1.text_input("Name", placeholder="e.g. Resistor 10kΩ")
            new_id = a2.text_input("Part ID (optional)")
            a3, a4 = st.columns(2)
            new_qty = a3.number_input("Quantity", min_value=0, value=0, step=1)
            new_type = a4.text_input("Type (optional)")
            new_url = st.text_input("Purchase URL (optional)")
            if st.form_submit_button("Add Part"):
                added = run_action(
                    add_part,
                    store,
                    new_name,
                    int(new_qty),
                    new_url,
                    part_id=new_id or None,
                    part_type=new_type or None,
                )
                if added:
                    st.toast(f"Added {part_label(added)}", icon="🎸")

    if store.inventory:
        with st.expander("🔧 Adjust Stock"):
            adj_id = st.selectbox(
                "Part", list(store.inventory), format_func=part_label, key="adj_part"
            )
            delta = st.number_input("Amount", min_value=1, value=1, step=1, key="adj_qty")
            b1, b2, b3 = st.columns(3)
            if b1.button("➕ Add Stock", key="adj_add"):
                run_action(adjust_quantity, store, adj_id, int(delta), success="Stock updated")
            if b2.button("➖ Remove Stock", key="adj_remove"):
                run_action(adjust_quantity, store, adj_id, -int(delta), success="Stock updated")
            if b3.button("Use One", key="adj_use"):
                run_action(use_part, store, adj_id, success="Used one")

        with st.expander("✏️ Edit / Delete Part"):
            edit_id = st.selectbox(
                "Part", list(store.inventory), format_func=part_label, key="edit_part"
            )
            current = store.inventory[edit_id]
            with st.form(f"edit_form_{edit_id}"):
                e1, e2 = st.columns(2)
                ed_name = e1.text_input("Name", value=current.get("name", ""))
                ed_id = e2.text_input("Part ID", value=edit_id)
                e3, e4 = st.columns(2)
                ed_qty = e3.number_input(
                    "Quantity", min_value=0, value=int(current.get("quantity", 0)), step=1
                )
                ed_type = e4.text_input("Type", value=current.get("type", ""))
                ed_url = st.text_input("Purchase URL", value=current.get("purchaseUrl", ""))
                if st.form_submit_button("Save Changes"):
                    run_action(
                        edit_part,
                        store,
                        edit_id,
                        ed_name,
                        int(ed_qty),
                        ed_url,
                        new_id=ed_id,
                        part_type=ed_type,
                        success="Part updated",
                    )
            if st.button("🗑️ Delete Part", key="edit_delete"):
                run_action(delete_part, store, edit_id, success="Part deleted")
                st.rerun()

    if st.button("🧹 Merge Duplicate Parts", key="merge_btn"):
        merge = run_action(merge_inventory_duplicates, store)
        if merge is not None:
            if merge["merged"]:
                st.toast(f"Merged {merge['merged']} duplicate part(s)", icon="🧹")
            else:
                st.toast("No duplicates found", icon="✅")

# --- Projects ---

with tab_proj:
    st.subheader("Compare a BOM")
    bom_method = st.radio("Input Method", INPUT_METHODS, horizontal=True, key="bom_method")
    bom_data = input_widget(bom_method, "bom")

    if st.button("Compare BOM", type="primary", key="bom_compare"):
        st.session_state.bom_payload = run_action(
            process_input_data, bom_method, bom_data, "BOM", target="bom"
        )

    payload = cast("ImportPayload | None", st.session_state.bom_payload)
    if payload and payload["bom"]:
        preview = reconcile_project({"name": "", "bom": payload["bom"]}, store.inventory)
        render_report(preview)

        project_name = st.text_input(
            "Project Name",
            value=payload.get("project_name") or "",
            placeholder="e.g. Big Muff",
            key="bom_project_name",
        )
        p1, p2 = st.columns(2)
        if p1.button("💾 Save as Project", key="bom_save"):
            created = run_action(create_project, store, project_name, payload["bom"])
            if created:
                st.session_state.bom_payload = None
                st.toast(f"Created project {project_label(created)}", icon="🎸")
                st.rerun()
        if p2.button("➕ Add Missing Parts", key="bom_add_missing"):
            added_count = run_action(add_missing_parts, store, payload["bom"])
            if added_count is not None:
                st.toast(f"Added {added_count} part(s) to inventory", icon="📦")
    elif payload is not None:
        st.warning("No BOM lines found in that input.")

    st.divider()
    st.subheader("Projects")

    if not store.projects:
        st.info("No projects yet. Compare a BOM above and save it as a project.")
    else:
        proj_id = st.selectbox(
            "Project", list(store.projects), format_func=project_label, key="proj_select"
        )
        report = run_action(project_report, store, proj_id)
        if report is not None:
            render_report(report)

        project = store.projects[proj_id]
        d1, d2 = st.columns(2)
        d1.download_button(
            "Download BOM (CSV)",
            data=export_project_bom_csv(project, store.inventory),
            file_name=build_export_filename(f"{make_id(project['name'])}-bom", "csv"),
            mime="text/csv",
            key="proj_dl_csv",
        )
        d2.download_button(
            "Download BOM (JSON)",
            data=export_project_bom_json(project, store.inventory),
            file_name=build_export_filename(f"{make_id(project['name'])}-bom", "json"),
            mime="application/json",
            key="proj_dl_json",
        )

        with st.expander("✏️ Manage Project"):
            renamed = st.text_input("Name", value=project["name"], key=f"proj_name_{proj_id}")
            if st.button("Rename", key="proj_rename"):
                run_action(rename_project, store, proj_id, renamed, success="Project renamed")

            tagged = list(filter_inventory(store.inventory, proj_id))
            if tagged:
                untag_id = st.selectbox(
                    "Part", tagged, format_func=part_label, key="proj_untag_part"
                )
                if st.button("Remove Part from Project", key="proj_untag"):
                    run_action(
                        remove_part_from_project,
                        store,
                        untag_id,
                        proj_id,
                        success="Part removed from project",
                    )

            if st.button("🗑️ Delete Project", key="proj_delete"):
                run_action(delete_project, store, proj_id, success="Project deleted")
                st.rerun()

# --- Requirements ---

with tab_req:
    st.subheader("📊 All-Project Requirements")
    requirements = run_action(all_project_requirements, store) or {}
    if not requirements:
        st.info("Save a project to see combined requirements.")
    else:
        rows = requirement_rows(requirements)
        for row in rows:
            row["Status"] = STATUS_ICONS.get(row["Status"], row["Status"])
        st.dataframe(rows, use_container_width=True)
        st.download_button(
            "Download Requirements (CSV)",
            data=export_requirements_csv(requirements),
            file_name=build_export_filename("pedal-requirements", "csv"),
            mime="text/csv",
            type="primary",
            key="req_dl",
        )

# --- Import / Export ---

with tab_io:
    st.subheader("Import")
    st.caption(
        "CSV files need a Name and Quantity column. JSON files can be a full "
        "export, a plain inventory, or a project BOM."
    )
    imp_method = st.radio("Input Method", INPUT_METHODS, horizontal=True, key="imp_method")
    imp_data = input_widget(imp_method, "imp")
    imp_project = st.text_input(
        "Project Name (BOM files only)", key="imp_project_name"
    )

    if st.button("Import", type="primary", key="imp_run"):
        imp_payload = run_action(process_input_data, imp_method, imp_data, "import")
        if imp_payload is not None:
            stats = run_action(
                import_inventory, store, imp_payload, project_name=imp_project or None
            )
            if stats is not None:
                st.toast(
                    f"Imported {stats['rows_read']} record(s): "
                    f"{stats['parts_added']} added, {stats['parts_updated']} updated",
                    icon="📥",
                )
                if stats["rows_skipped"]:
                    st.warning(f"Skipped {stats['rows_skipped']} row(s) without a name.")

    st.divider()
    st.subheader("💾 Export")
    x1, x2 = st.columns(2)
    x1.download_button(
        "Download Everything (JSON)",
        data=export_snapshot_json(store.inventory, store.projects),
        file_name=build_export_filename("guitar-pedal-inventory", "json"),
        mime="application/json",
        key="exp_json",
    )
    x2.download_button(
        "Download Inventory (CSV)",
        data=export_inventory_csv(store.inventory),
        file_name=build_export_filename("guitar-pedal-inventory", "csv"),
        mime="text/csv",
        key="exp_csv",
    )
