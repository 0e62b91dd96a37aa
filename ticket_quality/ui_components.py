"""Streamlit slider/lock panel for the ticket quality metrics."""

import streamlit as st

from . import config


def slider_state_key(key):
    return f"slider_{key}"


def _on_slider_change(controller, key):
    controller.on_slider_moved(key, st.session_state.get(slider_state_key(key)))


def metric_controls(controller):
    """Render one slider + lock button per metric, synced from the store."""
    snapshot = controller.snapshot()
    for key in config.METRIC_KEYS:
        state = snapshot.metrics[key]
        # Store is the source of truth; a rejected move snaps back here.
        st.session_state[slider_state_key(key)] = state.value
        slider_col, lock_col = st.columns([5, 1], vertical_alignment="bottom")
        with slider_col:
            st.slider(
                config.METRIC_LABELS[key],
                min_value=config.VALUE_MIN,
                max_value=config.VALUE_MAX,
                step=1,
                key=slider_state_key(key),
                disabled=state.locked,
                on_change=_on_slider_change,
                args=(controller, key),
            )
        with lock_col:
            st.button(
                "Unlock" if state.locked else "Lock",
                key=f"lock_{key}",
                type="primary" if state.locked else "secondary",
                use_container_width=True,
                on_click=controller.on_lock_toggled,
                args=(key,),
            )
