"""
REAPER Bridge — file-based JSON transport to the Lua listener

Python -> JSON request file -> Lua (mcp_bridge.lua) -> REAPER -> JSON response

Every call names a ReaScript function and its arguments. The Lua side runs
it on REAPER's main thread and answers with ``{"ok": True, "ret": value}``
or ``{"ok": False, "error": "message"}``. Functions with several return
values come back as a list in ``ret``. Object handles (tracks, items, takes)
are opaque values that are passed back unchanged in later calls.
"""

import asyncio
import json
import logging
import os
import tempfile
import time
import uuid
from pathlib import Path
from typing import Any, Dict, List, Optional

logger = logging.getLogger(__name__)


# ============================================================================
# Configuration — from environment, no hardcoded paths
# ============================================================================

def get_bridge_dir() -> Path:
    env = os.environ.get("REAPER_MCP_BRIDGE_DIR")
    if env:
        return Path(env)
    return Path.home() / ".reaper-mcp"


DEFAULT_TIMEOUT = float(os.environ.get("REAPER_MCP_TIMEOUT", "10"))
POLL_INTERVAL = float(os.environ.get("REAPER_MCP_POLL_INTERVAL", "0.03"))


class ReaperBridge:
    """Request/response channel to REAPER through two JSON files."""

    def __init__(self, bridge_dir: Optional[Path] = None,
                 timeout: float = DEFAULT_TIMEOUT,
                 poll_interval: float = POLL_INTERVAL):
        self.bridge_dir = Path(bridge_dir) if bridge_dir else get_bridge_dir()
        self.timeout = timeout
        self.poll_interval = poll_interval
        # The listener handles one request at a time
        self._lock = asyncio.Lock()

    @property
    def request_file(self) -> Path:
        return self.bridge_dir / "request.json"

    @property
    def response_file(self) -> Path:
        return self.bridge_dir / "response.json"

    def _write_request(self, request: Dict[str, Any]) -> None:
        self.bridge_dir.mkdir(parents=True, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=self.bridge_dir, suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(request, f)
            os.replace(tmp_path, self.request_file)
        except BaseException:
            Path(tmp_path).unlink(missing_ok=True)
            raise

    def _read_response(self, request_id: str) -> Optional[Dict[str, Any]]:
        if not self.response_file.exists():
            return None
        try:
            content = self.response_file.read_text(encoding="utf-8")
            response = json.loads(content)
        except (json.JSONDecodeError, OSError):
            # Listener is still writing
            return None
        if response.get("id") != request_id:
            return None
        self.response_file.unlink(missing_ok=True)
        response.pop("id", None)
        return response

    async def call_lua(self, func: str, args: Optional[List[Any]] = None,
                       timeout: Optional[float] = None) -> Dict[str, Any]:
        """Call a ReaScript function inside REAPER and wait for its result.

        Args:
            func: ReaScript API function name (e.g. "TrackFX_GetCount")
            args: Positional arguments, JSON-serializable
            timeout: Seconds to wait for the answer (default: bridge timeout)

        Returns:
            Response dict with "ok" and either "ret" or "error"
        """
        request_id = str(uuid.uuid4())
        request = {"id": request_id, "func": func, "args": args or []}
        wait = self.timeout if timeout is None else timeout

        async with self._lock:
            try:
                self.response_file.unlink(missing_ok=True)
                self._write_request(request)
            except OSError as e:
                return {"ok": False, "error": f"Failed to write request file: {e}"}

            logger.debug("-> %s %s", func, request["args"])
            start = time.monotonic()
            while time.monotonic() - start < wait:
                response = self._read_response(request_id)
                if response is not None:
                    logger.debug("<- %s %s", func, response)
                    return response
                await asyncio.sleep(self.poll_interval)

        logger.warning("Bridge call %s timed out after %.1fs", func, wait)
        return {
            "ok": False,
            "error": (
                f"Timeout — REAPER did not answer {func} within {wait:.0f}s. "
                "Make sure mcp_bridge.lua is running inside REAPER."
            ),
        }


bridge = ReaperBridge()
