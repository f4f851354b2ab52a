"""Wrappers for VMware Fusion's vmcli tool."""

import asyncio
import logging
import os
from pathlib import Path
from typing import Union

logger = logging.getLogger(__name__)

DEFAULT_VMCLI_PATH = Path("/Applications/VMware Fusion.app/Contents/Public/vmcli")
CONFIG_PARAMS_QUERY = ("ConfigParams", "query")


class VMCLIError(Exception):
    """Base class for vmcli invocation failures."""


class ToolNotFound(VMCLIError):
    def __init__(self, path: Union[str, Path]):
        super().__init__(f"vmcli binary not found or not executable at {path}")
        self.path = Path(path)


class OutputDecodingFailed(VMCLIError):
    def __init__(self):
        super().__init__("Failed to decode vmcli output")


class NonZeroExit(VMCLIError):
    def __init__(self, code: int, output: str):
        super().__init__(f"vmcli exited with code {code}: {output.strip()}")
        self.code = code
        self.output = output


class ToolTimeout(VMCLIError):
    def __init__(self, timeout: float):
        super().__init__(f"vmcli did not finish within {timeout:g}s")
        self.timeout = timeout


async def _kill(proc: asyncio.subprocess.Process) -> None:
    try:
        proc.kill()
    except ProcessLookupError:
        pass
    await proc.wait()


def is_executable(path: Union[str, Path]) -> bool:
    p = Path(path)
    return p.is_file() and os.access(p, os.X_OK)


async def run_config_params_query(
    vmx_path: Union[str, Path],
    vmcli_path: Union[str, Path, None] = None,
    timeout: float = 30.0,
) -> str:
    """Run ``vmcli <vmx> ConfigParams query`` and return stdout+stderr as text.

    The subprocess is awaited on the event loop, never blocking it. There
    are no retries. A hung tool is killed after ``timeout`` seconds, and a
    cancelled call kills it before the cancellation propagates.
    """
    executable = Path(vmcli_path) if vmcli_path else DEFAULT_VMCLI_PATH
    if not is_executable(executable):
        raise ToolNotFound(executable)

    cmd = [str(executable), str(vmx_path), *CONFIG_PARAMS_QUERY]
    logger.debug(f"Running {cmd}")
    proc = await asyncio.create_subprocess_exec(
        *cmd,
        stdout=asyncio.subprocess.PIPE,
        stderr=asyncio.subprocess.STDOUT,
    )
    try:
        stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        raise ToolTimeout(timeout)
    finally:
        if proc.returncode is None:
            # Timed out, or the disk load was cancelled by a newer refresh
            await _kill(proc)

    try:
        output = stdout.decode("utf-8")
    except UnicodeDecodeError:
        raise OutputDecodingFailed()

    if proc.returncode != 0:
        raise NonZeroExit(proc.returncode, output)
    return output

