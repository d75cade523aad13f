"""
Streamlit Frontend for Logbook Export / Import

The file-picker and share surface for the portability engine. It hands
bytes to the engine and shows what came back; all the real work happens
in logbook.orchestrator.

Run with:
    streamlit run app/main.py
"""

import asyncio

import streamlit as st
from pydantic import ValidationError

from logbook.audit import create_correlation_id
from logbook.config import validate_all_settings
from logbook.models.entities import ExportFormat, ExportOptions, ImportSummary
from logbook.orchestrator import ExportFlow, ImportFlow, create_app_components
from logbook.portability import PortabilityError
from logbook.services.storage import StorageError


# Page configuration
st.set_page_config(
    page_title="Logbook Data",
    page_icon="📒",
    layout="centered",
)


@st.cache_resource
def get_event_loop() -> asyncio.AbstractEventLoop:
    """One loop for the whole session, so the SQLite connection stays on it."""
    return asyncio.new_event_loop()


def run_async(coro):
    """Helper to run async functions in Streamlit."""
    return get_event_loop().run_until_complete(coro)


@st.cache_resource
def get_components():
    """Get or create application components (cached)."""
    return run_async(create_app_components(use_storage=True))


def main():
    """Main application entry point."""
    export_flow, import_flow, _ = get_components()

    st.sidebar.title("📒 Logbook")
    page = st.sidebar.radio(
        "Navigate to:",
        ["📤 Export Data", "📥 Import Data", "⚙️ Settings"],
        index=0,
    )

    if page == "📤 Export Data":
        render_export_page(export_flow)
    elif page == "📥 Import Data":
        render_import_page(import_flow)
    elif page == "⚙️ Settings":
        render_settings_page()


def _format_picker(key: str) -> ExportFormat:
    return st.radio(
        "Format",
        options=list(ExportFormat),
        format_func=lambda fmt: fmt.label,
        horizontal=True,
        key=key,
    )


def render_export_page(export_flow: ExportFlow):
    """Render the export page."""
    st.title("📤 Export Data")

    fmt = _format_picker("export_format")

    st.subheader("Data to Export")
    include_tasks = st.toggle("Tasks", value=True)
    include_notes = st.toggle("Notes", value=True)
    include_payments = st.toggle("Payments", value=True)
    include_clients = st.toggle("Clients", value=True)

    try:
        options = ExportOptions(
            include_tasks=include_tasks,
            include_notes=include_notes,
            include_payments=include_payments,
            include_clients=include_clients,
        )
    except ValidationError as e:
        st.warning(e.errors()[0]["msg"].removeprefix("Value error, "))
        return

    if st.button("Export Data", type="primary"):
        with st.spinner("Preparing export..."):
            try:
                result = run_async(
                    export_flow.export(fmt, options, correlation_id=create_correlation_id())
                )
            except StorageError as e:
                st.error(f"Export failed: {e}")
                return

        st.success(
            f"Exported {result.client_count} clients and {result.entry_count} entries."
        )
        st.download_button(
            label=f"Save {result.filename}",
            data=result.content,
            file_name=result.filename,
            mime=result.mime_type,
        )


def render_import_page(import_flow: ImportFlow):
    """Render the import page."""
    st.title("📥 Import Data")

    fmt = _format_picker("import_format")

    st.markdown(
        f"Select a {fmt.label} file exported from Logbook.\n\n"
        "- Entries and clients with the same ID are skipped to prevent duplicates\n"
        "- Entries whose client cannot be found are imported without a client"
    )

    uploaded_file = st.file_uploader(
        f"Select {fmt.label} file",
        type=[fmt.file_extension],
    )

    if uploaded_file and st.button("Import", type="primary"):
        with st.spinner("Importing..."):
            try:
                summary = run_async(
                    import_flow.import_data(
                        uploaded_file.getvalue(),
                        fmt,
                        correlation_id=create_correlation_id(),
                    )
                )
            except PortabilityError as e:
                st.error(f"Import failed: {e.user_message}")
                return

        st.success("Your data has been imported successfully.")
        render_summary(summary)


def render_summary(summary: ImportSummary):
    """Render the import summary."""
    st.subheader("Import Summary")
    col1, col2 = st.columns(2)

    with col1:
        st.markdown("**Entries**")
        st.metric("Imported", f"{summary.imported_entries} of {summary.total_entries}")
        st.metric("Skipped (duplicates)", summary.skipped_entries)

    with col2:
        st.markdown("**Clients**")
        st.metric("Imported", f"{summary.imported_clients} of {summary.total_clients}")
        st.metric("Skipped (duplicates)", summary.skipped_clients)


def render_settings_page():
    """Render the settings page."""
    st.title("⚙️ Settings")

    status = validate_all_settings()

    for name, key in [("Storage", "storage"), ("Export/Import", "portability"), ("App", "app")]:
        if status.get(key, False):
            st.success(f"✅ {name} - OK")
        else:
            st.error(f"❌ {name} - {status.get(f'{key}_error', 'Not configured')}")

    st.markdown("---")
    st.markdown(
        "Settings are read from `LOGBOOK_*` environment variables or a `.env` file, "
        "e.g. `LOGBOOK_DATABASE_PATH=~/logbook.sqlite3`."
    )


if __name__ == "__main__":
    main()
