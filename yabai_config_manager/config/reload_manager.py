"""
Reload of the yabai and skhd daemons after a configuration write.

yabai is restarted through its launchd service; skhd is asked to reload and,
if that fails, sent SIGUSR1 directly.
"""

import asyncio
import logging
import os
import signal
from typing import List, Optional, Sequence

import psutil

from ..errors import ReloadError

logger = logging.getLogger(__name__)

YABAI_RELOAD_COMMAND = ["yabai", "--restart-service"]
SKHD_RELOAD_COMMAND = ["skhd", "--reload"]
SKHD_PROCESS_NAME = "skhd"


class ServiceReloader:
    """Runs daemon reload commands."""

    def __init__(self, timeout: float = 10.0, strict: bool = False):
        """
        Initialize service reloader.

        Args:
            timeout: Seconds to wait for a reload command
            strict: Raise ReloadError instead of returning False
        """
        self.timeout = timeout
        self.strict = strict

    async def reload_yabai(self) -> bool:
        """Restart the yabai service."""
        ok, reason = await self._run(YABAI_RELOAD_COMMAND)
        if ok:
            logger.info("yabai service restarted")
            return True
        return self._fail("yabai", reason)

    async def reload_skhd(self) -> bool:
        """Reload skhd, falling back to SIGUSR1."""
        ok, reason = await self._run(SKHD_RELOAD_COMMAND)
        if ok:
            logger.info("skhd configuration reloaded")
            return True

        logger.warning(f"skhd --reload failed ({reason}), signalling process")
        pids = find_process_ids(SKHD_PROCESS_NAME)
        if not pids:
            return self._fail("skhd", f"{reason}; no running skhd process")

        for pid in pids:
            try:
                os.kill(pid, signal.SIGUSR1)
            except OSError as e:
                return self._fail("skhd", f"could not signal pid {pid}: {e}")
        logger.info(f"Sent SIGUSR1 to skhd ({', '.join(str(p) for p in pids)})")
        return True

    async def _run(self, command: Sequence[str]):
        """Run a command and return (success, reason)."""
        try:
            process = await asyncio.create_subprocess_exec(
                *command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE
            )
        except FileNotFoundError:
            return False, f"{command[0]} not found in PATH"
        except OSError as e:
            return False, str(e)

        try:
            _, stderr = await asyncio.wait_for(process.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            return False, f"timed out after {self.timeout}s"

        if process.returncode != 0:
            message = stderr.decode(errors="replace").strip() or f"exit code {process.returncode}"
            return False, message
        return True, None

    def _fail(self, service: str, reason: Optional[str]) -> bool:
        if self.strict:
            raise ReloadError(service, reason or "unknown error")
        logger.warning(f"Failed to reload {service}: {reason}")
        return False


def find_process_ids(name: str) -> List[int]:
    """PIDs of running processes with an exact name match."""
    pids = []
    for process in psutil.process_iter(["pid", "name"]):
        if process.info.get("name") == name:
            pids.append(process.info["pid"])
    return pids
