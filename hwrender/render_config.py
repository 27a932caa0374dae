"""
Hardware Synth Render Configuration

Command IDs, extension command names and expected plugin names used by the
realtime hardware synth render. These are REAPER/SWS constants; the bridge
settings live in bridge.py and come from the environment.
"""

import os

RENDER_CONFIG = {
    "hardware_insert": {
        # Name reported by TrackFX_GetFXName for the first slot
        "fx_name": "VST: ReaInsert (Cockos)",
        "fx_index": 0,
    },
    "commands": {
        "render_to_track": 41719,
        "render_to_track_second_pass": 42416,
        "unselect_all_items": 40289,
        "select_items_in_time_selection": 40718,
    },
    # SWS extension actions, resolved with NamedCommandLookup
    "render_speed": {
        "store": "_XENAKIOS_STORERENDERSPEED",
        "set_realtime": "_XENAKIOS_SETRENDERSPEEDRT",
        "recall": "_XENAKIOS_RECALLRENDERSPEED",
    },
    "automation": {
        "mode_key": "I_AUTOMODE",
        "trim_read": 0,
    },
    "undo_label": "Realtime render MIDI items within time selection dry, ignoring first effect",
    "messages": {
        "select_single_track": "Please select a single track.",
        "select_track": "Please select a track.",
        "no_loop": "There is no loop set, aborting.",
        "wrong_first_fx": "The first effect on this track is not ReaInsert, aborting.",
        "not_midi": "One or more of the selected items is not MIDI, aborting.",
        "missing_sws": "Please install SWS!",
        "missing_sws_command": "SWS command {name} is not available, aborting.",
    },
    "message_box_title": "Error",
}

# Realtime render takes as long as the rendered range, so the render command
# gets its own bridge timeout: at least RENDER_TIMEOUT, and longer for long
# time selections.
RENDER_TIMEOUT = float(os.environ.get("REAPER_MCP_RENDER_TIMEOUT", "600"))
RENDER_TIMEOUT_FACTOR = 1.5
RENDER_TIMEOUT_MARGIN = 60.0


def render_timeout(start: float, end: float) -> float:
    """Bridge timeout in seconds for a realtime render of ``start``-``end``."""
    return max(RENDER_TIMEOUT, (end - start) * RENDER_TIMEOUT_FACTOR + RENDER_TIMEOUT_MARGIN)
