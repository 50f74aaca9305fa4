#!/usr/bin/env python3
from __future__ import annotations

import pandas as pd
import streamlit as st

from spendsheet.loader import ALL_FORMATS
from spendsheet.logging_setup import configure_logging
from spendsheet.pipeline import BatchResult, process_batch
from spendsheet.settings import load_settings
from spendsheet.writer import DEFAULT_FILENAME, build_export_rows, workbook_bytes

SUPPORTED_EXTS = sorted(ext.lstrip(".") for ext in ALL_FORMATS)


@st.cache_resource(show_spinner=False)
def cached_settings():
    configure_logging()
    return load_settings()


def ensure_state() -> None:
    if "batch" not in st.session_state:
        st.session_state.batch = None


def records_frame(batch: BatchResult, language: str) -> pd.DataFrame:
    rows = build_export_rows(batch.records, language)
    return pd.DataFrame(rows[1:], columns=rows[0])


def render_file_status(batch: BatchResult) -> None:
    for result in batch.files:
        if result.failed:
            st.error(f"{result.filename}: {result.failure_message}")
            continue
        st.success(
            f"{result.filename}: {result.source_name} · sheet '{result.sheet_name}' · "
            f"{len(result.records)} records"
        )
        for warning in result.warnings:
            st.warning(warning)


def render_results(language: str) -> None:
    batch: BatchResult | None = st.session_state.batch
    if batch is None:
        return

    metrics = st.columns(3)
    metrics[0].metric("Files", len(batch.files))
    metrics[1].metric("Records", len(batch.records))
    metrics[2].metric("Failures", len(batch.failures))

    render_file_status(batch)

    if batch.records:
        st.dataframe(records_frame(batch, language), width="stretch", hide_index=True)
    st.download_button(
        "Download workbook",
        data=workbook_bytes(batch.records, batch.failure_rows(), language),
        file_name=DEFAULT_FILENAME,
        mime="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
        disabled=not batch.records and not batch.failures,
    )


def main() -> None:
    st.set_page_config(page_title="spendsheet", page_icon="🧾", layout="wide")
    ensure_state()
    settings = cached_settings()

    st.title("spendsheet")
    st.caption("Card, bank, and payroll exports merged into one expense workbook.")

    language = st.radio("Header language", ["ko", "en"], horizontal=True)
    uploads = st.file_uploader("Statement files", type=SUPPORTED_EXTS, accept_multiple_files=True)

    if st.button("Process", disabled=not uploads):
        with st.spinner("Processing files..."):
            st.session_state.batch = process_batch(
                [(upload.name, upload.getvalue()) for upload in uploads],
                definitions=settings.definitions,
                rules=settings.rules,
                config=settings.config,
            )

    render_results(language)


if __name__ == "__main__":
    main()
