import streamlit as st
import pandas as pd
import altair as alt
from pathlib import Path

from rate_fetcher.cache import JsonCacheStore
from rate_fetcher.errors import CacheIOError

st.set_page_config(page_title="Exchange Rate Cache Inspector", layout="wide")

st.title("📈 Exchange Rate Cache Inspector")

# Sidebar
st.sidebar.header("Settings")
cache_dir = st.sidebar.text_input("Cache directory", value=".")


@st.cache_data(ttl=60)
def list_cached_assets(directory: str) -> list[str]:
    # Cache files are named after the asset key with "/" replaced: BTC_EUR.json
    return sorted(p.stem for p in Path(directory).glob("*.json") if p.is_file())


@st.cache_data(ttl=60)
def load_series(directory: str, asset_key: str) -> pd.DataFrame | None:
    try:
        return JsonCacheStore(directory).load(asset_key)
    except CacheIOError as e:
        st.error(f"Cannot load cache for {asset_key}: {e}")
        return None


def _pick_default_date_window(dmin: pd.Timestamp, dmax: pd.Timestamp, days: int = 365) -> tuple[pd.Timestamp, pd.Timestamp]:
    if pd.isna(dmin) or pd.isna(dmax):
        return dmin, dmax
    start = max(dmin, dmax - pd.Timedelta(days=days))
    return start, dmax


def _missing_days(df: pd.DataFrame) -> int:
    if df.empty:
        return 0
    expected = (df["date"].iloc[-1] - df["date"].iloc[0]).days + 1
    return int(expected - len(df))


def _build_rate_chart(df: pd.DataFrame, asset_key: str):
    return (
        alt.Chart(df)
        .mark_line()
        .encode(
            x=alt.X("date:T", title="Date"),
            y=alt.Y("value:Q", title=f"{asset_key} close", scale=alt.Scale(zero=False)),
            tooltip=[alt.Tooltip("date:T"), alt.Tooltip("value:Q", format=",.2f")],
        )
    )


# Main
if cache_dir:
    assets = list_cached_assets(cache_dir)
    if not assets:
        st.info(f"No cache files (*.json) found in `{cache_dir}`. Run `scripts/sync_rates.py` first.")
    else:
        st.write(f"✅ Found {len(assets)} cached assets.")
        asset_key = st.selectbox("Select Asset", assets)
        df = load_series(cache_dir, asset_key) if asset_key else None

        if df is None:
            st.warning("No data for selected asset.")
        elif df.empty:
            st.warning("Cache file is empty.")
        else:
            dmin = df["date"].min()
            dmax = df["date"].max()
            col_a, col_b, col_c, col_d = st.columns(4)
            col_a.metric("Start", dmin.strftime("%Y-%m-%d"))
            col_b.metric("End", dmax.strftime("%Y-%m-%d"))
            col_c.metric("Rows", len(df))
            col_d.metric("Missing days", _missing_days(df))

            default_start, default_end = _pick_default_date_window(dmin, dmax, days=365)
            if dmin == dmax:
                view = df
            else:
                # Streamlit slider wants python datetime/date
                start_dt, end_dt = st.slider(
                    "Date range",
                    min_value=dmin.to_pydatetime(),
                    max_value=dmax.to_pydatetime(),
                    value=(default_start.to_pydatetime(), default_end.to_pydatetime()),
                )
                view = df[(df["date"] >= pd.Timestamp(start_dt)) & (df["date"] <= pd.Timestamp(end_dt))]

            if view.empty:
                st.warning("No data in selected date range.")
            else:
                st.altair_chart(_build_rate_chart(view, asset_key), use_container_width=True)
                with st.expander("Records", expanded=False):
                    st.dataframe(view.sort_values("date", ascending=False), use_container_width=True)
else:
    st.info("Please enter a cache directory in the sidebar.")
