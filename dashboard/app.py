"""Streamlit schedule viewer for the venue scheduling API."""

from __future__ import annotations

import datetime
import os
from typing import Any, Dict, Optional

import pandas as pd
import requests
import streamlit as st

# ==========================================
# Configuration & Constants
# ==========================================
API_BASE_URL = os.getenv("VENUE_API_URL", "http://127.0.0.1:8000")

STATE_SYMBOLS = {
    "booked": "■",
    "editing": "◆",
    "available": "○",
    "unavailable": "·",
    "not_applicable": "",
}

st.set_page_config(
    page_title="Venue Schedule",
    page_icon="🗓️",
    layout="wide",
)


# ==========================================
# API Helper Functions
# ==========================================
def fetch_schedule(target_date: str, meeting_id: Optional[int], viewer_id: str) -> Optional[Dict[str, Any]]:
    params: Dict[str, Any] = {"date": target_date}
    if meeting_id:
        params["meeting_id"] = meeting_id
    if viewer_id:
        params["viewer_id"] = viewer_id
    try:
        response = requests.get(f"{API_BASE_URL}/schedule", params=params, timeout=5)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        st.error(f"Backend connection failed: {e}")
        return None


def fetch_suggestion(target_date: str, time_value: str, duration: int, attendees: int) -> Optional[Dict[str, Any]]:
    try:
        response = requests.post(
            f"{API_BASE_URL}/suggest",
            json={
                "date": target_date,
                "time": time_value,
                "duration_minutes": duration,
                "attendee_count": attendees,
            },
            timeout=5,
        )
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        st.error(f"Suggestion failed: {e}")
        return None


def fetch_daily_usage() -> Optional[list]:
    try:
        response = requests.get(f"{API_BASE_URL}/usage/daily", timeout=5)
        response.raise_for_status()
        return response.json()
    except requests.exceptions.RequestException as e:
        st.error(f"Usage lookup failed: {e}")
        return None


def schedule_frame(payload: Dict[str, Any]) -> pd.DataFrame:
    """One row per room, one column per slot label."""
    records = {}
    for row in payload.get("rows", []):
        room = row["room"]
        title = f"{room['name']} ({room['capacity']})"
        if not room["is_active"]:
            title += " (inactive)"
        records[title] = {
            cell["time"]: cell["label"] or STATE_SYMBOLS.get(cell["state"], "")
            for cell in row["cells"]
        }
    return pd.DataFrame.from_dict(records, orient="index", columns=payload.get("time_slots", []))


# ==========================================
# UI Page Functions
# ==========================================
def render_schedule_page() -> None:
    st.header("🗓️ Room Schedule")

    col1, col2, col3 = st.columns(3)
    with col1:
        target_date = st.date_input("Date", datetime.date.today())
    with col2:
        meeting_id = st.number_input("Meeting ID (0 = browse)", min_value=0, value=0)
    with col3:
        viewer_id = st.text_input("Viewer ID", "")

    payload = fetch_schedule(str(target_date), int(meeting_id) or None, viewer_id.strip())
    if payload:
        st.dataframe(schedule_frame(payload), use_container_width=True)
        st.caption("■ booked  ◆ your booking  ○ bookable  · not bookable")


def render_suggestion_page() -> None:
    st.header("🔎 Find the Next Free Slot")

    col1, col2 = st.columns(2)
    with col1:
        target_date = st.date_input("Preferred Date", datetime.date.today())
        time_value = st.time_input("Preferred Time", datetime.time(9, 0), step=1800)
    with col2:
        duration = st.selectbox("Duration (minutes)", [30, 45, 60, 90])
        attendees = st.number_input("Attendees", min_value=0, value=2)

    if st.button("Suggest", type="primary"):
        result = fetch_suggestion(str(target_date), time_value.strftime("%H:%M"), duration, attendees)
        if result:
            if result.get("error"):
                st.warning(result["error"])
            else:
                st.success(f"{result['room_name']} on {result['date']} at {result['time']}")


def render_usage_page() -> None:
    st.header("📊 Booked Hours per Day")
    rows = fetch_daily_usage()
    if rows is None:
        return
    if not rows:
        st.info("No active reservations yet.")
        return
    frame = pd.DataFrame({row["date"]: row["hours_by_room"] for row in rows}).T.fillna(0.0)
    st.bar_chart(frame)


# ==========================================
# Main App Router
# ==========================================
def main() -> None:
    st.sidebar.title("Venue Scheduler")
    page = st.sidebar.radio("View", ["Schedule", "Suggest", "Usage"])

    if page == "Schedule":
        render_schedule_page()
    elif page == "Suggest":
        render_suggestion_page()
    elif page == "Usage":
        render_usage_page()


if __name__ == "__main__":
    main()
