"""
Native-app hand-off: edit a remote file in a local application.

The file is downloaded, opened in a native app, and uploaded back as a new
revision once that app exits. When the app process cannot be followed the
session's manual override lets the caller upload later.
"""

import asyncio
import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, List, Optional

from ..models.drive import DriveFile
from ..models.transfer import ProgressEvent, TransferSession
from .base import Transferable

logger = logging.getLogger(__name__)


class NativeAppLauncher(ABC):
    """Opens files in local applications and follows the resulting process."""

    @abstractmethod
    async def open(self, path: Path) -> None:
        pass

    @abstractmethod
    async def find_process(self, path: Path) -> Optional[int]:
        """Pid of the process editing ``path``, if one can be identified."""
        pass

    @abstractmethod
    async def wait_for_exit(self, pid: int) -> None:
        pass


class CommandLauncher(NativeAppLauncher):
    """Runs ``command + [path]`` and follows the spawned process."""

    def __init__(self, command: List[str]):
        self.command = list(command)
        self._processes: Dict[int, asyncio.subprocess.Process] = {}
        self._by_path: Dict[Path, int] = {}

    async def open(self, path: Path) -> None:
        process = await asyncio.create_subprocess_exec(
            *self.command,
            str(path),
            stdout=asyncio.subprocess.DEVNULL,
            stderr=asyncio.subprocess.DEVNULL,
        )
        self._processes[process.pid] = process
        self._by_path[Path(path)] = process.pid

    async def find_process(self, path: Path) -> Optional[int]:
        pid = self._by_path.get(Path(path))
        if pid is None or self._processes[pid].returncode is not None:
            return None
        return pid

    async def wait_for_exit(self, pid: int) -> None:
        process = self._processes.pop(pid, None)
        if process is None:
            return
        await process.wait()
        self._by_path = {p: i for p, i in self._by_path.items() if i != pid}


class NativeAppHandoff:
    """Runs the download, open, watch, upload cycle for one provider."""

    def __init__(
        self,
        provider: Transferable,
        launcher: NativeAppLauncher,
        wakeup_delay: float = 2.0,
        sleep=asyncio.sleep,
    ):
        self.provider = provider
        self.launcher = launcher
        self.wakeup_delay = wakeup_delay
        self._sleep = sleep

    async def open_file(
        self,
        owner: str,
        file: DriveFile,
        session: TransferSession,
        dest_dir: Optional[Path] = None,
    ) -> Optional[Path]:
        """
        Edit ``file`` in a native application.

        Returns:
            The local copy, or None if the download failed. When the upload
            did not happen automatically, ``session.manual_override`` is
            ready for the caller.
        """
        path = await self.provider.download_file(owner, file, session, dest_dir)
        if path is None:
            return None

        session.manual_override.path = str(path)
        session.manual_override.upload_fn = lambda: self.provider.update_file(owner, path, None, file)

        session.emit(ProgressEvent.FIRING_APP, path=str(path))
        try:
            await self.launcher.open(path)
        except OSError as e:
            logger.error(f"Could not open {path.name} in a native app: {e}")
            session.emit(ProgressEvent.PROCESS_NOT_FOUND)
            return path

        session.emit(ProgressEvent.WAITING_FOR_WAKEUP)
        await self._sleep(self.wakeup_delay)

        session.emit(ProgressEvent.SEARCHING_PROCESS)
        pid = await self.launcher.find_process(path)
        session.emit(ProgressEvent.PROCESS_ANALYZED)
        if pid is None:
            logger.info(f"No process found for {path.name}, waiting for manual upload")
            session.emit(ProgressEvent.PROCESS_NOT_FOUND)
            return path

        session.emit(ProgressEvent.PROCESS_FOUND, pid=pid)
        session.emit(ProgressEvent.WAITING_FOR_PROCESS_EXIT, pid=pid)
        if not await self._wait_unless_cancelled(pid, session):
            logger.info(f"Stopped watching {path.name}, waiting for manual upload")
            return path

        session.emit(ProgressEvent.PROCESS_EXITED, pid=pid)
        await self.provider.update_file(owner, path, session, file)
        return path

    async def _wait_unless_cancelled(self, pid: int, session: TransferSession) -> bool:
        exit_task = asyncio.create_task(self.launcher.wait_for_exit(pid))
        cancel_task = asyncio.create_task(session.cancel_token.wait())
        done, pending = await asyncio.wait(
            {exit_task, cancel_task}, return_when=asyncio.FIRST_COMPLETED
        )
        for task in pending:
            task.cancel()
        return exit_task in done and not session.cancelled
