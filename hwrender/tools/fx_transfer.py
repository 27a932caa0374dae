"""
FX Chain Transfer Strategies

After the hardware synth has been rendered to a new track, the effects that
follow the hardware insert on the original track are moved over to it.
Two ways of doing that:

- copy:  duplicate FX 1..N-1 one at a time with TrackFX_CopyToTrack.
         Simple, but per-FX automation envelopes stay behind.
- chunk: transplant the whole <FXCHAIN> block through the track state
         chunks, then delete the hardware insert from the new track.
         Envelopes come along.

Strategies don't talk to the bridge themselves; the workflow hands them a
``call(func, args)`` coroutine that returns ``ret`` or raises.
"""

import logging
from typing import Any, Awaitable, Callable, Dict, List

from ..chunks import count_fx, get_fx_chain, renew_fx_guids, set_fx_chain

logger = logging.getLogger(__name__)

HostCall = Callable[[str, List[Any]], Awaitable[Any]]


def _second(ret: Any) -> Any:
    """Second value of a multi-return ReaScript call."""
    if isinstance(ret, (list, tuple)):
        return ret[1] if len(ret) > 1 else None
    return ret


class FxChainTransfer:
    """Base class for moving the post-insert FX chain to the rendered track."""

    name = ""
    description = ""
    # Require exactly one selected track (otherwise only "none" is rejected)
    strict_selection = True
    # Switch the track to trim/read automation while rendering
    neutralize_automation = False

    async def transfer(self, call: HostCall, source: Any, target: Any,
                       fx_count: int) -> int:
        """Move FX 1..fx_count-1 from source to target.

        Returns:
            Number of effects that ended up on the target track
        """
        raise NotImplementedError


class CopyEachFx(FxChainTransfer):
    name = "copy"
    description = "Copy each FX after the hardware insert (envelopes not copied)"

    async def transfer(self, call: HostCall, source: Any, target: Any,
                       fx_count: int) -> int:
        copied = 0
        for fx in range(1, fx_count):
            dest_index = await call("TrackFX_GetCount", [target])
            await call("TrackFX_CopyToTrack", [source, fx, target, dest_index, False])
            copied += 1
        logger.debug("Copied %d FX to the rendered track", copied)
        return copied


class ChunkTransplant(FxChainTransfer):
    name = "chunk"
    description = "Transplant the whole FX chain with envelopes, minus the hardware insert"
    strict_selection = False
    neutralize_automation = True

    async def transfer(self, call: HostCall, source: Any, target: Any,
                       fx_count: int) -> int:
        if fx_count <= 1:
            return 0

        source_chunk = _second(await call("GetTrackStateChunk", [source, "", False]))
        target_chunk = _second(await call("GetTrackStateChunk", [target, "", False]))
        if not source_chunk or not target_chunk:
            raise Exception("Failed to read track state chunks")

        fx_chain = get_fx_chain(source_chunk)
        if fx_chain is None:
            raise Exception("Source track chunk has no FX chain")

        fx_chain = renew_fx_guids(fx_chain)
        await call("SetTrackStateChunk", [target, set_fx_chain(target_chunk, fx_chain), False])

        # The hardware insert came along at slot 0
        await call("TrackFX_Delete", [target, 0])
        transplanted = count_fx(fx_chain) - 1
        logger.debug("Transplanted FX chain (%d FX) to the rendered track", transplanted)
        return transplanted


TRANSFER_MODES: Dict[str, FxChainTransfer] = {
    CopyEachFx.name: CopyEachFx(),
    ChunkTransplant.name: ChunkTransplant(),
}


def get_transfer(name: str) -> FxChainTransfer:
    """Look up a transfer strategy by name ("copy" or "chunk")."""
    try:
        return TRANSFER_MODES[name.lower()]
    except KeyError:
        available = ", ".join(TRANSFER_MODES)
        raise ValueError(f"Unknown transfer mode '{name}'. Available: {available}") from None
