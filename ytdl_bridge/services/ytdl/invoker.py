import asyncio
import contextlib
import os
import subprocess
from typing import Callable, List, Optional, Sequence

from loguru import logger

from ytdl_bridge.config import settings
from ytdl_bridge.core.errors import OutputLimitError, ProcessLaunchError

from .binary import YtdlBinary

LineHandler = Callable[[str], None]


class ProcessInvoker:
    """
    Spawns the extraction executable and drains both pipes line by line.

    ``limit`` is the asyncio stream buffer size; a line longer than that
    makes ``readline()`` fail, which is reported as ``OutputLimitError``.
    """

    def __init__(self, binary: YtdlBinary):
        self.binary = binary

    async def spawn(
        self,
        argv: Sequence[str],
        cwd: Optional[str] = None,
        limit: Optional[int] = None,
        env: Optional[dict] = None,
    ) -> asyncio.subprocess.Process:
        cmd = [*self.binary.command(), *argv]
        logger.info(f"Spawning: {' '.join(cmd)}")
        try:
            return await asyncio.create_subprocess_exec(
                *cmd,
                cwd=cwd,
                env={**os.environ, **env} if env else None,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                limit=limit or settings.MAX_BUFFER_SIZE,
                creationflags=subprocess.CREATE_NO_WINDOW if os.name == 'nt' else 0,
            )
        except OSError as e:
            raise ProcessLaunchError(f"Failed to launch {cmd[0]}: {e}") from e

    async def run(
        self,
        argv: Sequence[str],
        on_stdout: LineHandler,
        on_stderr: LineHandler,
        cwd: Optional[str] = None,
        limit: Optional[int] = None,
        env: Optional[dict] = None,
    ) -> int:
        """
        Run to completion, feeding every decoded line to its handler.

        Returns the exit status once the process has exited and both pipes
        reached EOF.

        Raises:
            ProcessLaunchError: the process could not be spawned.
            OutputLimitError: a line exceeded ``limit``; the child is killed.
        """
        limit = limit or settings.MAX_BUFFER_SIZE
        process = await self.spawn(argv, cwd=cwd, limit=limit, env=env)
        readers: List[asyncio.Task] = [
            asyncio.create_task(self._drain(process.stdout, on_stdout, limit)),
            asyncio.create_task(self._drain(process.stderr, on_stderr, limit)),
        ]

        try:
            await asyncio.gather(*readers)
        except BaseException:
            # Kill on limit overrun, a raising callback or cancellation
            with contextlib.suppress(ProcessLookupError):
                process.kill()
            for reader in readers:
                reader.cancel()
            await asyncio.gather(*readers, return_exceptions=True)
            await process.wait()
            raise

        returncode = await process.wait()
        logger.debug(f"Process {process.pid} exited with code {returncode}")
        return returncode

    @staticmethod
    async def _drain(stream: asyncio.StreamReader, handler: LineHandler, limit: int) -> None:
        while True:
            try:
                line = await stream.readline()
            except ValueError as e:
                logger.error(f"Output line exceeded {limit} bytes")
                raise OutputLimitError(f"Output exceeded max buffer size ({limit} bytes): {e}", limit=limit) from e
            if not line:
                break
            handler(line.decode("utf-8", errors="replace").rstrip("\r\n"))

