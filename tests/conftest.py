"""Shared fixtures for the render tool tests."""

from unittest.mock import patch

import pytest

from fakes import FakeReaper, build_synth_scene


@pytest.fixture
def reaper():
    """FakeReaper patched in as the bridge of the render tools."""
    fake = FakeReaper()
    with patch("hwrender.tools.hw_synth_render.bridge", fake):
        yield fake


@pytest.fixture
def synth_track(reaper):
    """Synth track scene from build_synth_scene; returns the track index."""
    return build_synth_scene(reaper)
