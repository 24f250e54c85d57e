from __future__ import annotations

import logging

import streamlit as st

from src.dashboard.app import run_streamlit_app
from src.ingestion.source_registry import source_keys

LOGGER = logging.getLogger(__name__)


def main() -> None:
    st.set_page_config(page_title="series-insights", layout="wide")

    try:
        run_streamlit_app(configure_page=False)
    except ValueError as error:
        LOGGER.warning("dashboard configuration rejected: %s", error)
        st.error(f"{error}. Valid sources: {', '.join(source_keys())}")


if __name__ == "__main__":
    main()
