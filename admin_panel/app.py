import os
import socket
from typing import Dict, Any

import httpx
import pandas as pd
import streamlit as st
from sqlalchemy import create_engine, text
from sqlalchemy.exc import ProgrammingError
from dotenv import load_dotenv

# Load environment variables from .env
load_dotenv()


# --- Helpers ---
def resolve_app_base_url() -> str:
    """Base URL of the catalogue API, with fallbacks for docker and local runs."""
    url = os.getenv("ADMIN_APP_URL", "").strip()
    if url:
        return url

    # docker-compose service "app"
    try:
        socket.gethostbyname("app")
        return "http://app"
    except OSError:
        pass

    return "http://localhost:8000"


# --- Settings ---
APP_BASE = resolve_app_base_url()
DB_URL = os.getenv("ADMIN_DB_URL")
POLL_SECONDS = int(os.getenv("ADMIN_POLL_SECONDS", "5"))
PAGE_SIZE = int(os.getenv("ADMIN_PAGE_SIZE", "500"))
STUCK_RETRY_THRESHOLD = int(os.getenv("OUTBOX_STUCK_RETRY_THRESHOLD", "5"))

if not DB_URL:
    DB_USER = os.getenv("POSTGRES_USER")
    DB_PASSWORD = os.getenv("POSTGRES_PASSWORD")
    DB_SERVER = "db"  # inside the docker network
    DB_PORT = os.getenv("POSTGRES_PORT", "5432")
    DB_NAME = os.getenv("POSTGRES_DB")
    DB_URL = f"postgresql://{DB_USER}:{DB_PASSWORD}@{DB_SERVER}:{DB_PORT}/{DB_NAME}"

engine = create_engine(DB_URL)


def trigger_outbox_drain():
    """Ask the API to run one outbox drain tick right now."""
    try:
        url = APP_BASE.rstrip("/") + "/api/v1/trigger/process-outbox"
        with httpx.Client() as client:
            response = client.post(url, timeout=30)
            response.raise_for_status()
            st.success(f"Outbox drain started. Status: {response.status_code}")
            if response.text:
                try:
                    st.json(response.json())
                except ValueError:
                    st.text(response.text)
    except httpx.HTTPStatusError as e:
        st.error(f"Failed to start the drain: {e.response.status_code} - {e.response.text}")
    except httpx.HTTPError as e:
        st.error(f"API unreachable: {e}")


def fetch_stats() -> Dict[str, Any] | str:
    try:
        url = APP_BASE.rstrip("/") + "/admin/outbox/stats"
        with httpx.Client() as client:
            response = client.get(url, params={"retry_threshold": STUCK_RETRY_THRESHOLD}, timeout=10)
            response.raise_for_status()
            return response.json()
    except httpx.HTTPError as e:
        return f"ERROR: {e}"


def fetch_outbox_safe(params: dict):
    """
    Read outbox messages straight from the database:
    - on success: a pd.DataFrame
    - when the table is missing: the sentinel 'TABLE_NOT_EXISTS'
    - on any other error: 'ERROR: ...'
    """
    try:
        where = []
        sql_params: Dict[str, Any] = {"limit": params.get("limit", PAGE_SIZE)}

        state = params.get("state", "Pending")
        if state == "Pending":
            where.append("processed = false")
        elif state == "Stuck":
            where.append("processed = false AND retry_count >= :threshold")
            sql_params["threshold"] = STUCK_RETRY_THRESHOLD
        elif state == "Processed":
            where.append("processed = true")

        event_type_like = params.get("event_type_like", "")
        if event_type_like:
            where.append("(event_type ILIKE :event_type)")
            sql_params["event_type"] = f"%{event_type_like}%"

        subject = params.get("subject", "")
        if subject:
            where.append("(subject = :subject)")
            sql_params["subject"] = subject

        where_sql = " AND ".join(where) if where else "TRUE"
        sql = text(
            f"""
            SELECT
              id, event_type, subject, event_time, processed, processed_at,
              retry_count, error, data_version, expires_at, data
            FROM outbox_messages
            WHERE {where_sql}
            ORDER BY event_time ASC
            LIMIT :limit
            """
        )
        return pd.read_sql(sql, engine, params=sql_params)
    except ProgrammingError as e:
        if "relation \"outbox_messages\" does not exist" in str(e) or "UndefinedTable" in str(e):
            return "TABLE_NOT_EXISTS"
        return f"ERROR: {e}"
    except Exception as e:
        return f"ERROR: {e}"


@st.cache_data(ttl=POLL_SECONDS)
def load_outbox(state: str = "Pending", event_type_like: str = "", subject: str = "", limit: int = None):
    if limit is None:
        limit = PAGE_SIZE
    return fetch_outbox_safe({
        "state": state,
        "event_type_like": event_type_like,
        "subject": subject,
        "limit": limit,
    })


# --- UI ---
st.set_page_config(page_title="Catalogue Admin - Outbox", layout="wide")

st.title("🔧 Catalogue Admin")
st.caption(f"DB: {DB_URL.split('@')[1] if '@' in DB_URL else 'N/A'} | App: {APP_BASE}")

# --- Outbox health ---
st.header("Outbox")
stats = fetch_stats()
if isinstance(stats, str):
    st.error(f"Could not load outbox stats: {stats[6:]}")
else:
    col1, col2, col3 = st.columns(3)
    col1.metric("Pending", stats.get("pending", 0))
    col2.metric(f"Stuck (retries ≥ {stats.get('stuck_retry_threshold')})", stats.get("stuck", 0))
    col3.metric("Oldest pending", stats.get("oldest_pending_event_time") or "none")

if st.button("🚀 Drain outbox now", use_container_width=True):
    trigger_outbox_drain()

st.divider()

# --- Messages ---
st.header("📊 Messages")

col1, col2, col3 = st.columns(3)
with col1:
    state_filter = st.selectbox("State:", ["Pending", "Stuck", "Processed", "All"])
with col2:
    event_type_filter = st.text_input("Event type:", placeholder="e.g. Device.StatusChanged")
with col3:
    subject_filter = st.text_input("Subject:", placeholder="e.g. devices/d1")

if st.button("🔄 Refresh"):
    st.cache_data.clear()

result = load_outbox(state=state_filter, event_type_like=event_type_filter, subject=subject_filter)

if isinstance(result, str):
    if result == "TABLE_NOT_EXISTS":
        st.warning("Table `outbox_messages` does not exist. Run the migrations (prestart.py).")
    else:
        st.error(f"Could not load outbox messages: {result[6:]}")
elif result.empty:
    st.info("No messages match the filters.")
else:
    st.dataframe(result, use_container_width=True)
    st.caption(f"Showing {len(result)} messages")
