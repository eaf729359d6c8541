import streamlit as st
import json
import time
import zipfile
import logging
from datetime import datetime
from io import BytesIO
import pandas as pd

import config
from order_models import PackingSlipError
from order_processor import (
    CUP_SIZES,
    SINGLES,
    UNCLASSIFIED,
    filter_orders,
    load_order_config,
    process_orders,
    sort_orders_by_zone,
)
from pdf_layout import generate_document
from picklist import aggregate_picklist, build_picklist_blocks, create_picklist_excel
from printed_store import PrintedStore
from shipping_zones import SHIPPING_ZONES

logger = logging.getLogger(__name__)

# Set page configuration
st.set_page_config(
    page_title="Packing Slip Generator",
    page_icon="📦",
    layout="wide",
    initial_sidebar_state="collapsed"
)

TABLE_COLUMNS = ["Print", "Fulfillment", "Order #", "Date", "Box", "Sizes", "Units", "Personalized",
                 "Zone", "Printed"]

DOCUMENT_LABELS = {
    "slips": "📄 Packing Slips",
    "picklist": "🧾 Picklist",
    "combined": "📚 Picklist + Slips",
}

# Apply theme-based CSS
def apply_custom_css(is_dark_mode=False):
    theme_colors = {
        "bg_primary": "#0f172a" if is_dark_mode else "#f8fafc",
        "card_bg": "#1e293b" if is_dark_mode else "#ffffff",
        "text_primary": "#f8fafc" if is_dark_mode else "#1e293b",
        "text_muted": "#94a3b8" if is_dark_mode else "#64748b",
        "border": "#334155" if is_dark_mode else "#e2e8f0"
    }

    st.markdown(f"""
    <style>
        .stApp {{
            background-color: {theme_colors["bg_primary"]} !important;
        }}

        /* Header styling */
        .header-container {{
            background: linear-gradient(135deg, #2563eb 0%, #3b82f6 100%);
            padding: 2rem;
            border-radius: 15px;
            margin-bottom: 2rem;
            color: white;
            text-align: center;
        }}

        .header-title {{
            font-size: 2.5rem;
            font-weight: 700;
            margin-bottom: 0.5rem;
        }}

        .header-subtitle {{
            font-size: 1.1rem;
            opacity: 0.9;
        }}

        /* Stats cards */
        .stats-container {{
            display: grid;
            grid-template-columns: repeat(auto-fit, minmax(180px, 1fr));
            gap: 1rem;
            margin: 1rem 0;
        }}

        .stat-card {{
            background: {theme_colors["card_bg"]};
            color: {theme_colors["text_primary"]};
            padding: 1.5rem;
            border-radius: 12px;
            text-align: center;
            border: 1px solid {theme_colors["border"]};
        }}

        .stat-value {{
            font-size: 2rem;
            font-weight: 700;
        }}

        .stat-label {{
            color: {theme_colors["text_muted"]};
            font-size: 0.9rem;
        }}

        /* Log styling */
        .log-container {{
            background: {theme_colors["card_bg"]};
            color: {theme_colors["text_primary"]};
            padding: 1rem;
            border-radius: 8px;
            font-family: 'Consolas', monospace;
            font-size: 0.9rem;
            max-height: 400px;
            overflow-y: auto;
            border: 1px solid {theme_colors["border"]};
        }}
    </style>
    """, unsafe_allow_html=True)

def initialize_session_state():
    """Initialize session state variables"""
    if 'orders' not in st.session_state:
        st.session_state.orders = []
    if 'source_name' not in st.session_state:
        st.session_state.source_name = None
    if 'log_messages' not in st.session_state:
        st.session_state.log_messages = []
    if 'output_files' not in st.session_state:
        st.session_state.output_files = {}
    if 'processing_time' not in st.session_state:
        st.session_state.processing_time = "0.0s"
    if 'dark_mode' not in st.session_state:
        st.session_state.dark_mode = False

def log_message(message):
    """Add a message to the log"""
    timestamp = datetime.now().strftime("%H:%M:%S")
    formatted_message = f"[{timestamp}] {message}"
    st.session_state.log_messages.append(formatted_message)
    logger.info(message)

def create_header():
    """Create the application header"""
    st.markdown("""
    <div class="header-container">
        <div class="header-title">📦 Packing Slip Generator</div>
        <div class="header-subtitle">Packing slips and picklists from item fulfillment exports</div>
    </div>
    """, unsafe_allow_html=True)

def create_stats_dashboard(orders, selected, printed):
    """Create the stats dashboard"""
    st.markdown("### 📊 Batch Statistics")

    units = sum(item.quantity for order in selected for item in order.items)
    st.markdown(f"""
    <div class="stats-container">
        <div class="stat-card">
            <div class="stat-value">{len(orders)}</div>
            <div class="stat-label">Orders loaded</div>
        </div>
        <div class="stat-card">
            <div class="stat-value">{len(selected)}</div>
            <div class="stat-label">Selected</div>
        </div>
        <div class="stat-card">
            <div class="stat-value">{units}</div>
            <div class="stat-label">Units</div>
        </div>
        <div class="stat-card">
            <div class="stat-value">{sum(1 for o in selected if o.tranid in printed)}</div>
            <div class="stat-label">Already printed</div>
        </div>
        <div class="stat-card">
            <div class="stat-value">{st.session_state.processing_time}</div>
            <div class="stat-label">Time</div>
        </div>
    </div>
    """, unsafe_allow_html=True)

def create_download_all_zip():
    """Create a ZIP file containing all output files for download"""
    if not st.session_state.output_files:
        return None

    zip_buffer = BytesIO()
    with zipfile.ZipFile(zip_buffer, 'w', zipfile.ZIP_DEFLATED) as zip_file:
        for filename, file_data in st.session_state.output_files.items():
            zip_file.writestr(filename, file_data)

    zip_buffer.seek(0)
    return zip_buffer.getvalue()

def read_uploaded_records(uploaded_file):
    """
    Read line records from an uploaded JSON export.
    Accepts a bare list or a search response holding the list under 'results' or 'items'.
    """
    data = json.loads(uploaded_file.getvalue().decode("utf-8"))
    if isinstance(data, dict):
        data = data.get("results") or data.get("items") or []
    if not isinstance(data, list):
        raise ValueError("Expected a list of line records")
    return data

def orders_dataframe(orders, printed):
    """One row per order for the selection table"""
    rows = []
    for order in orders:
        rows.append({
            "Print": False,
            "Fulfillment": order.tranid,
            "Order #": order.order_number,
            "Date": order.datecreated,
            "Box": order.box_size or UNCLASSIFIED,
            "Sizes": ", ".join(sorted(order.cup_sizes)),
            "Units": sum(item.quantity for item in order.items),
            "Personalized": order.personalized,
            "Zone": order.zone_label,
            "Printed": order.tranid in printed,
        })
    return pd.DataFrame(rows, columns=TABLE_COLUMNS)

def create_filters(order_config):
    """Filter widgets; returns the keyword arguments for filter_orders"""
    st.markdown("### 🔎 Filters")
    col1, col2, col3, col4 = st.columns(4)

    tri_state = {"All": None, "Yes": True, "No": False}

    with col1:
        personalized = st.selectbox("Personalized", list(tri_state), key="filter_personalized")
        printed_only = st.selectbox("Printed", list(tri_state), index=2, key="filter_printed")

    with col2:
        cup_sizes = st.multiselect("Cup sizes (exact)", list(CUP_SIZES.values()), key="filter_sizes")
        box_options = ["All", SINGLES] + [key for key in order_config if key != SINGLES] + [UNCLASSIFIED]
        box_size = st.selectbox("Box size", box_options, key="filter_box")

    with col3:
        zone_options = {"All": None}
        zone_options.update({zone['name']: zone['id'] for zone in SHIPPING_ZONES})
        zone_options["Unknown"] = "unknown"
        zone_name = st.selectbox("Shipping zone", list(zone_options), key="filter_zone")
        sort_by_zone = st.checkbox("Furthest zones first", value=False, key="sort_zone")

    with col4:
        use_dates = st.checkbox("Filter by date", value=False, key="filter_use_dates")
        date_from = date_to = None
        if use_dates:
            date_from = st.date_input("From", key="filter_date_from")
            date_to = st.date_input("To", key="filter_date_to")

    return {
        "personalized": tri_state[personalized],
        "printed_only": tri_state[printed_only],
        "cup_sizes": cup_sizes,
        "box_size": None if box_size == "All" else box_size,
        "zone": zone_options[zone_name],
        "date_from": date_from,
        "date_to": date_to,
    }, sort_by_zone

def generate_outputs(orders, kinds, include_workbook):
    """Generate the requested documents into session state"""
    start_time = time.time()
    st.session_state.output_files = {}
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    try:
        for kind in kinds:
            data = generate_document(orders, kind, status_callback=log_message)
            st.session_state.output_files[f"{kind}_{timestamp}.pdf"] = data

        if include_workbook:
            blocks = build_picklist_blocks(aggregate_picklist(orders))
            buffer = BytesIO()
            create_picklist_excel(blocks, buffer)
            st.session_state.output_files[f"picklist_{timestamp}.xlsx"] = buffer.getvalue()
            log_message(f"Picklist workbook ready: {len(blocks)} SKU block(s)")
    except PackingSlipError as e:
        log_message(f"❌ Error: {e}")
        return False

    st.session_state.processing_time = f"{time.time() - start_time:.1f}s"
    log_message(f"✅ Generated {len(st.session_state.output_files)} file(s) for {len(orders)} orders")
    return True

def main():
    initialize_session_state()
    apply_custom_css(st.session_state.dark_mode)
    create_header()

    try:
        order_config = load_order_config(config.ORDER_CONFIG_PATH)
    except PackingSlipError as e:
        st.error(f"❌ {e}")
        return

    store = PrintedStore(config.PRINTED_DB_PATH).open()
    try:
        render_page(store, order_config)
    finally:
        store.close()

    # Footer
    st.markdown("---")
    st.markdown("""
    <div style="text-align: center; color: #64748b; font-size: 0.9rem; padding: 1rem;">
        Packing Slip Generator • Built with Streamlit
    </div>
    """, unsafe_allow_html=True)

def render_page(store, order_config):
    # Top controls
    controls_col1, controls_col2 = st.columns([1, 5])
    with controls_col1:
        if st.button("🌙 Dark" if not st.session_state.dark_mode else "☀️ Light", key="theme_toggle"):
            st.session_state.dark_mode = not st.session_state.dark_mode
            st.rerun()
    with controls_col2:
        if st.button("🔄 Reset All", key="reset_all"):
            for key in ['orders', 'log_messages']:
                st.session_state[key] = []
            st.session_state.output_files = {}
            st.session_state.source_name = None
            st.session_state.processing_time = "0.0s"
            st.rerun()

    # Upload section
    st.markdown("### 📁 Load Order Lines")
    uploaded_file = st.file_uploader(
        "Select an item fulfillment export (JSON)",
        type=['json'],
        help="Line records as exported from the order system"
    )

    if uploaded_file is not None and uploaded_file.name != st.session_state.source_name:
        try:
            records = read_uploaded_records(uploaded_file)
        except ValueError as e:
            st.error(f"❌ Could not read {uploaded_file.name}: {e}")
        else:
            log_message(f"Loaded {len(records)} line records from {uploaded_file.name}")
            st.session_state.orders = process_orders(records, order_config, status_callback=log_message)
            st.session_state.source_name = uploaded_file.name
            st.session_state.output_files = {}

    orders = st.session_state.orders
    if not orders:
        st.info("Upload an export to see orders.")
        return

    printed = store.get_all()
    filters, sort_by_zone = create_filters(order_config)
    selected = filter_orders(orders, printed_orders=printed, **filters)
    if sort_by_zone:
        selected = sort_orders_by_zone(selected)

    st.markdown("---")
    stats_col1, stats_col2 = st.columns([2, 1])

    with stats_col1:
        create_stats_dashboard(orders, selected, printed)

        st.markdown("### 📋 Orders")
        table = st.data_editor(
            orders_dataframe(selected, printed),
            hide_index=True,
            use_container_width=True,
            disabled=TABLE_COLUMNS[1:],
            key="orders_table"
        )
        ticked = set(table.loc[table["Print"], "Fulfillment"]) if not table.empty else set()
        # Nothing ticked means the whole filtered selection
        batch = [order for order in selected if order.tranid in ticked] or selected

    with stats_col2:
        st.markdown("### 📝 Processing Log")
        log_content = "\n".join(st.session_state.log_messages[-15:])
        st.markdown(f"""
        <div class="log-container">
            {log_content.replace(chr(10), '<br>') if log_content else 'No log messages yet...'}
        </div>
        """, unsafe_allow_html=True)

    # Generation
    st.markdown("## 🖨️ Generate")
    gen_col1, gen_col2, gen_col3 = st.columns([2, 1, 1])
    with gen_col1:
        kinds = st.multiselect("Documents", list(DOCUMENT_LABELS), default=["slips"],
                               format_func=DOCUMENT_LABELS.get, key="document_kinds")
        include_workbook = st.checkbox("Picklist workbook (.xlsx)", value=False, key="include_workbook")
    with gen_col2:
        generate_button = st.button(
            f"🚀 Generate for {len(batch)} orders",
            disabled=not batch or not (kinds or include_workbook),
            type="primary"
        )
    with gen_col3:
        if st.button("✅ Mark as printed", disabled=not batch):
            store.mark_many(order.tranid for order in batch)
            log_message(f"Marked {len(batch)} order(s) as printed")
            st.rerun()
        if st.button("↩️ Unmark", disabled=not batch):
            store.unmark_many(order.tranid for order in batch)
            log_message(f"Unmarked {len(batch)} order(s)")
            st.rerun()
        if st.button("🗑️ Clear all marks", disabled=not printed):
            store.clear_all()
            log_message(f"Cleared {len(printed)} printed mark(s)")
            st.rerun()

    if generate_button:
        with st.spinner("Generating documents..."):
            success = generate_outputs(batch, kinds, include_workbook)
        if success:
            st.success(f"🎉 **Done!** {len(st.session_state.output_files)} file(s) in "
                       f"{st.session_state.processing_time}")
        else:
            st.error("❌ Generation failed. Check the log for details.")

    # Download section
    if st.session_state.output_files:
        st.markdown("---")
        st.markdown("## 📥 Download Results")

        download_col1, download_col2 = st.columns([1, 2])

        with download_col1:
            zip_data = create_download_all_zip()
            if zip_data:
                timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
                st.download_button(
                    label="📦 Download All Files (ZIP)",
                    data=zip_data,
                    file_name=f"packing_documents_{timestamp}.zip",
                    mime="application/zip",
                    key="download_all",
                    type="primary",
                    use_container_width=True
                )

        with download_col2:
            st.markdown("**📄 Individual Downloads:**")
            for filename, file_data in st.session_state.output_files.items():
                mime_type = "application/pdf" if filename.endswith(".pdf") else \
                    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet"
                st.download_button(
                    label=f"📄 {filename}",
                    data=file_data,
                    file_name=filename,
                    mime=mime_type,
                    key=f"download_{filename}",
                    use_container_width=True
                )

if __name__ == "__main__":
    config.configure_logging()
    main()
