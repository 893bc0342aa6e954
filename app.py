"""
Dynamic Partition Visualizer — First-Fit, Best-Fit & Worst-Fit

Interactive front end for the partition engine: initialize a memory layout,
allocate and free partitions under a chosen placement policy, and compact
memory to remove external fragmentation.

Built with Streamlit for the web interface and Plotly for visualizations.
All state lives in the engine; this page only issues requests and renders
snapshots and outcomes.
"""

# =============================================================================
# IMPORTS
# =============================================================================

import logging
import time                                  # For pacing the auto-allocation loop

import streamlit as st                       # Web application framework
import plotly.graph_objects as go            # Interactive plotting library

import config
from engine import AllocationEngine
from partition import CompactionDirection
from placement import PlacementPolicy
from utils import describe, get_color, random_block_sizes

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")

_LOG_WRITERS = {"info": st.write, "success": st.success, "error": st.error}

# Configure the Streamlit page
st.set_page_config(page_title="Dynamic Partition Visualizer", layout="wide")

page = st.sidebar.radio("Choose View", ["Simulator", "Concepts"])
st.title("Dynamic Partition Visualizer — First-Fit, Best-Fit & Worst-Fit")

# =============================================================================
# CONCEPTS PAGE - Educational Content
# =============================================================================

if page == "Concepts":
    st.header("Operating System Concepts Used in This Project")
    st.markdown(
        """
        ### **1. Dynamic Partitioning**
        - Memory is a single linear range carved into variable-sized partitions on demand.
        - An allocation takes the low end of a free partition; the rest stays free.

        ### **2. Placement Policies**
        - **First-Fit**: the first free partition (lowest address) that is large enough.
        - **Best-Fit**: the smallest free partition that is large enough.
        - **Worst-Fit**: the largest free partition.

        ### **3. Coalescing**
        - A freed partition merges with free neighbours on either side.

        ### **4. Fragmentation**
        - **External**: enough free memory in total, but not in one piece.
        - **Internal**: unused space inside an allocated partition (fixed partitions only).

        ### **5. Compaction**
        - Slides allocated partitions to one end so all free memory forms a single partition.
        """
    )
    st.stop()

# -----------------------------------------------------------------------------
# SIDEBAR - Simulation Settings
# -----------------------------------------------------------------------------

st.sidebar.header("Simulation Settings")

policy = st.sidebar.selectbox("Placement Policy", options=[p.value for p in PlacementPolicy])
split = not st.sidebar.checkbox("Fixed partitions (no split)", value=False)

if 'engine' not in st.session_state or st.session_state.engine.split != split:
    st.session_state.engine = AllocationEngine(policy=policy, split=split)

engine: AllocationEngine = st.session_state.engine
engine.set_policy(policy)  # Switching policy rebuilds the table

st.sidebar.markdown("---")
st.sidebar.header("Initialize Memory")

layout_kind = st.sidebar.radio("Layout", ["Single block", "Random partitions"])
if layout_kind == "Single block":
    total_size = st.sidebar.number_input("Total size", min_value=1, max_value=100000,
                                         value=config.DEFAULT_TOTAL_SIZE, step=10)
else:
    partition_count = st.sidebar.selectbox("Partitions", options=config.PARTITION_COUNT_OPTIONS)

if st.sidebar.button("Initialize"):
    if layout_kind == "Single block":
        engine.initialize([int(total_size)])
    else:
        engine.initialize(random_block_sizes(partition_count))

if st.sidebar.button("Reset Simulation"):
    engine.reset()
    st.sidebar.success("Simulation reset")

# =============================================================================
# MAIN CONTENT AREA - Two Column Layout
# =============================================================================

col1, col2 = st.columns([1, 2])

with col1:
    st.subheader("Controls")

    request = st.number_input("Request size", min_value=1, value=50, step=1)
    if st.button("Allocate"):
        engine.allocate(int(request))

    if st.button("Auto Allocate"):
        # One allocation per step; the table is never touched mid-step
        allocated = 0
        for outcome in engine.fill():
            if outcome.ok:
                allocated += outcome.size
            time.sleep(config.ALLOCATE_DELAY)
        st.success(f"Allocation finished, total allocated: {allocated}")

    handles = [b.block_id for b in engine.snapshot() if b.occupied]
    if handles:
        victim = st.selectbox("Allocated block", options=handles)
        if st.button("Free"):
            engine.free_block(victim)

    c_low, c_high = st.columns(2)
    if c_low.button("Compact Low", disabled=not engine.can_compact(CompactionDirection.LOW)):
        engine.compact(CompactionDirection.LOW)
    if c_high.button("Compact High", disabled=not engine.can_compact(CompactionDirection.HIGH)):
        engine.compact(CompactionDirection.HIGH)

    st.subheader("Event Log")
    for ev in engine.history[-config.LOG_TAIL:][::-1]:
        message, kind = describe(ev)
        _LOG_WRITERS[kind](message)

with col2:
    # ----- Partition Map -----
    st.subheader(f"Memory Map — {engine.policy.value}")
    blocks = engine.snapshot()

    fig = go.Figure()
    for b in blocks:
        label = f"#{b.block_id}" if b.occupied else "Free"
        hover = f"{label}: [{b.address}, {b.address + b.size}) size={b.size}"
        if b.occupied and b.used != b.size:
            hover += f" used={b.used}"
        fig.add_trace(go.Bar(
            x=[b.size],
            y=["Memory"],
            orientation="h",
            text=label,
            marker_color=get_color(b.occupied, b.block_id),
            marker_line=dict(color="white", width=1),
            hovertext=hover,
            hoverinfo="text",
        ))
    fig.update_layout(
        barmode="stack",
        height=180,
        showlegend=False,
        yaxis=dict(showticklabels=False),
        xaxis=dict(range=[0, engine.total_size]),
    )
    st.plotly_chart(fig, use_container_width=True)

    st.subheader("Partition Table (snapshot)")
    st.table([
        {
            "index": i,
            "address": b.address,
            "size": b.size,
            "state": "allocated" if b.occupied else "free",
            "used": b.used,
            "block": b.block_id,
        }
        for i, b in enumerate(blocks)
    ])

    # ----- Statistics Display -----
    st.subheader("Statistics")
    metrics = engine.fragmentation()
    m1, m2, m3 = st.columns(3)
    m1.metric("Fragmentation", f"{metrics['fragment_percent']}%")
    m2.metric("External Fragmentation", metrics['external'])
    m3.metric("Utilization", metrics['utilization'])
