"""HW Synth Render: realtime hardware synth bounce tools for REAPER."""

__version__ = "1.0.0"
