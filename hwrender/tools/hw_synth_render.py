"""
Hardware Synth Render Tools for REAPER MCP

Realtime bounce of MIDI items through a hardware synthesizer insert.
Meant for tracks with ReaInsert in the first FX slot: every other effect
is bypassed, the MIDI items inside the time selection are rendered to a
new track in realtime, the bypass states are restored, the remaining
effects move to the new track and the original MIDI items are muted.

The whole run is one undo point. Precondition failures show a message box
in REAPER and stop the run before anything is changed.
"""

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from ..bridge import bridge
from ..render_config import RENDER_CONFIG, render_timeout
from .fx_transfer import TRANSFER_MODES, FxChainTransfer, get_transfer

logger = logging.getLogger(__name__)

MESSAGES = RENDER_CONFIG["messages"]
COMMANDS = RENDER_CONFIG["commands"]


# ============================================================================
# Results
# ============================================================================

class AbortReason(Enum):
    NO_TRACK = "no_track"
    TRACK_COUNT = "track_count"
    NO_LOOP = "no_loop"
    WRONG_FIRST_FX = "wrong_first_fx"
    NOT_MIDI = "not_midi"
    MISSING_SWS = "missing_sws"


class RenderAborted(Exception):
    """A precondition failed; the run stops here."""

    def __init__(self, reason: AbortReason, message: str):
        super().__init__(message)
        self.reason = reason
        self.message = message


@dataclass
class WorkflowResult:
    ok: bool
    reason: Optional[AbortReason] = None
    message: str = ""
    render_command: Optional[int] = None
    new_track: Any = None
    fx_transferred: int = 0
    muted_items: List[Any] = field(default_factory=list)


# ============================================================================
# Host calls
# ============================================================================

async def _host(func: str, args: Optional[List[Any]] = None,
                timeout: Optional[float] = None) -> Any:
    """Call a ReaScript function and return its value, raising on bridge errors."""
    if timeout is None:
        result = await bridge.call_lua(func, args or [])
    else:
        result = await bridge.call_lua(func, args or [], timeout=timeout)

    if not result.get("ok"):
        raise Exception(f"{func} failed: {result.get('error', 'Unknown error')}")
    return result.get("ret")


def _pair(ret: Any) -> List[Any]:
    if isinstance(ret, (list, tuple)):
        return list(ret)
    return [ret]


async def _lookup_sws(key: str) -> int:
    name = RENDER_CONFIG["render_speed"][key]
    command_id = await _host("NamedCommandLookup", [name])
    # REAPER answers 0 for unknown named commands
    if not command_id:
        if key == "store":
            raise RenderAborted(AbortReason.MISSING_SWS, MESSAGES["missing_sws"])
        raise RenderAborted(AbortReason.MISSING_SWS,
                            MESSAGES["missing_sws_command"].format(name=name))
    return int(command_id)


# ============================================================================
# Workflow
# ============================================================================

class HwSynthRender:
    """One realtime render run, from precondition checks to muting the source."""

    def __init__(self, second_pass: bool, transfer: FxChainTransfer):
        self.second_pass = second_pass
        self.transfer = transfer
        self.track: Any = None
        self.loop = (0.0, 0.0)
        self.items: List[Any] = []
        self.bypass_snapshot: Dict[int, bool] = {}
        self.automation_mode: Optional[float] = None

    # -- Preconditions (nothing is changed yet) ------------------------------

    async def select_track(self) -> None:
        if self.transfer.strict_selection:
            count = await _host("CountSelectedTracks", [0])
            if count != 1:
                raise RenderAborted(AbortReason.TRACK_COUNT, MESSAGES["select_single_track"])

        self.track = await _host("GetSelectedTrack", [0, 0])
        if not self.track:
            raise RenderAborted(AbortReason.NO_TRACK, MESSAGES["select_track"])
        logger.debug("Using selected track %s", self.track)

    async def check_loop(self) -> None:
        start, end = _pair(await _host("GetSet_LoopTimeRange", [False, False, 0, 0, False]))[:2]
        if start == end:
            raise RenderAborted(AbortReason.NO_LOOP, MESSAGES["no_loop"])
        self.loop = (start, end)
        logger.debug("Loop range %.3f - %.3f", start, end)

    async def check_first_fx(self) -> None:
        insert = RENDER_CONFIG["hardware_insert"]
        ret = _pair(await _host("TrackFX_GetFXName", [self.track, insert["fx_index"], ""]))
        found, name = ret[0], (ret[1] if len(ret) > 1 else "")
        if not found or name != insert["fx_name"]:
            raise RenderAborted(AbortReason.WRONG_FIRST_FX, MESSAGES["wrong_first_fx"])
        logger.debug("First FX is %s", name)

    # -- Mutating steps ------------------------------------------------------

    async def neutralize_automation(self) -> None:
        automation = RENDER_CONFIG["automation"]
        mode = await _host("GetMediaTrackInfo_Value", [self.track, automation["mode_key"]])
        if mode != automation["trim_read"]:
            self.automation_mode = mode
            logger.debug("Switching automation mode %s to trim/read", mode)
            await _host("SetMediaTrackInfo_Value",
                        [self.track, automation["mode_key"], automation["trim_read"]])

    async def restore_automation(self) -> None:
        if self.automation_mode is None:
            return
        await _host("SetMediaTrackInfo_Value",
                    [self.track, RENDER_CONFIG["automation"]["mode_key"], self.automation_mode])
        self.automation_mode = None

    async def collect_midi_items(self) -> None:
        await _host("Main_OnCommand", [COMMANDS["unselect_all_items"], 0])
        await _host("Main_OnCommand", [COMMANDS["select_items_in_time_selection"], 0])

        count = await _host("CountSelectedMediaItems", [0])
        for i in range(count):
            item = await _host("GetSelectedMediaItem", [0, i])
            take = await _host("GetActiveTake", [item])
            # Anything but MIDI means we can't tell what the render will do
            if not take or not await _host("TakeIsMIDI", [take]):
                raise RenderAborted(AbortReason.NOT_MIDI, MESSAGES["not_midi"])
            self.items.append(item)
        logger.debug("Collected %d MIDI item(s)", len(self.items))

    async def bypass_all_but_insert(self) -> None:
        fx_count = await _host("TrackFX_GetCount", [self.track])
        for fx in range(fx_count):
            self.bypass_snapshot[fx] = bool(await _host("TrackFX_GetEnabled", [self.track, fx]))
            if fx != RENDER_CONFIG["hardware_insert"]["fx_index"]:
                await _host("TrackFX_SetEnabled", [self.track, fx, False])
        logger.debug("Bypassed %d FX after the insert", max(fx_count - 1, 0))

    async def restore_bypass(self) -> None:
        for fx, enabled in self.bypass_snapshot.items():
            await _host("TrackFX_SetEnabled", [self.track, fx, enabled])
        logger.debug("Restored bypass states %s", self.bypass_snapshot)

    async def render(self) -> int:
        command = (COMMANDS["render_to_track_second_pass"] if self.second_pass
                   else COMMANDS["render_to_track"])
        timeout = render_timeout(*self.loop)
        logger.info("Rendering %d MIDI item(s) with action %d (timeout %.0fs)",
                    len(self.items), command, timeout)
        await _host("Main_OnCommand", [command, 0], timeout=timeout)
        return command

    async def run(self) -> WorkflowResult:
        await self.select_track()
        await self.check_loop()
        await self.check_first_fx()

        await _host("Undo_BeginBlock", [])
        try:
            if self.transfer.neutralize_automation:
                await self.neutralize_automation()
            try:
                return await self._render_and_transfer()
            finally:
                await self.restore_automation()
        finally:
            await _host("Undo_EndBlock", [RENDER_CONFIG["undo_label"], -1])

    async def _render_and_transfer(self) -> WorkflowResult:
        await self.collect_midi_items()

        await _host("Main_OnCommand", [await _lookup_sws("store"), 0])
        await _host("Main_OnCommand", [await _lookup_sws("set_realtime"), 0])

        await self.bypass_all_but_insert()
        command = await self.render()
        # An abort here leaves the FX bypassed; the bypass states are only
        # restored once the render speed is back.
        await _host("Main_OnCommand", [await _lookup_sws("recall"), 0])
        await self.restore_bypass()

        # Render-to-track leaves the new track selected
        new_track = await _host("GetSelectedTrack", [0, 0])
        if not new_track:
            raise Exception("Render did not produce a new track")

        fx_count = await _host("TrackFX_GetCount", [self.track])
        transferred = await self.transfer.transfer(_host, self.track, new_track, fx_count)

        await _host("SetMediaTrackInfo_Value", [self.track, "B_MUTE", 0])
        await self.restore_automation()

        for item in self.items:
            await _host("SetMediaItemInfo_Value", [item, "B_MUTE", 1])

        return WorkflowResult(
            ok=True,
            render_command=command,
            new_track=new_track,
            fx_transferred=transferred,
            muted_items=list(self.items),
        )


async def run_hw_synth_render(second_pass: bool = False,
                              transfer: Optional[FxChainTransfer] = None) -> WorkflowResult:
    """Run the hardware synth render and report how it ended.

    Args:
        second_pass: Use the second-pass render action instead of the first-pass one
        transfer: How the FX after the insert reach the new track (default: copy)

    Returns:
        WorkflowResult; on a failed precondition ``ok`` is False and ``reason``
        says which one. Bridge failures raise.
    """
    workflow = HwSynthRender(second_pass, transfer or TRANSFER_MODES["copy"])
    try:
        result = await workflow.run()
    except RenderAborted as e:
        logger.info("Hardware synth render aborted: %s", e.message)
        await _host("ShowMessageBox", [e.message, RENDER_CONFIG["message_box_title"], 0])
        return WorkflowResult(ok=False, reason=e.reason, message=e.message)

    await _host("UpdateArrange", [])
    return result


# ============================================================================
# MCP Tools
# ============================================================================

async def _render_tool(second_pass: bool, transfer: str) -> str:
    try:
        strategy = get_transfer(transfer)
    except ValueError as e:
        return str(e)

    result = await run_hw_synth_render(second_pass=second_pass, transfer=strategy)
    if not result.ok:
        return result.message

    return (f"Rendered {len(result.muted_items)} MIDI item(s) through ReaInsert "
            f"to a new track (action {result.render_command}). "
            f"{result.fx_transferred} FX moved to the new track ({strategy.name}); "
            f"original MIDI items muted.")


async def render_hw_synth(transfer: str = "copy") -> str:
    """Realtime render MIDI items in the time selection through the ReaInsert on the selected track.

    Args:
        transfer: How to move the remaining FX to the new track -
                  "copy" (per FX) or "chunk" (whole chain, keeps envelopes)
    """
    return await _render_tool(False, transfer)


async def render_hw_synth_second_pass(transfer: str = "copy") -> str:
    """Same as render_hw_synth, using the second-pass render action.

    Args:
        transfer: "copy" or "chunk"
    """
    return await _render_tool(True, transfer)


# ============================================================================
# Registration Function
# ============================================================================

def register_hw_synth_render_tools(mcp) -> int:
    """Register the hardware synth render tools with the MCP instance"""
    tools = [
        (render_hw_synth,
         "Bounce MIDI items in the time selection through a hardware synth "
         "(ReaInsert in FX slot 1) to a new track in realtime. Bypasses the other "
         "FX while rendering, moves them to the new track, mutes the MIDI items."),
        (render_hw_synth_second_pass,
         "Second-pass variant of the hardware synth render. "
         "Use when re-bouncing a track that was already rendered once."),
    ]

    for func, desc in tools:
        mcp.tool(description=desc)(func)

    return len(tools)
