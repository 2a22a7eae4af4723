"""Execute dcm4che tools via Docker and return their output.

This module only runs the command and performs logging. Argument
construction is handled by :mod:`dicomqr.net.builder`.
"""

from __future__ import annotations

import logging
import subprocess
from typing import List, Optional

from dicomqr.errors import ProtocolError

log = logging.getLogger(__name__)


def run_tool(cmd: List[str], timeout: Optional[float] = None, server: str | None = None) -> str:
    """Run a dcm4che command and capture its output.

    Args:
        cmd: Full command-line token list, for example
            ``["docker", "run", "--rm", "--entrypoint", "/opt/dcm4che/bin/findscu", …]``.
        timeout: Seconds before the process is killed; ``None`` waits forever.
        server: Server name attached to raised errors.

    Returns:
        str: Raw stdout of a successful run.

    Raises:
        ProtocolError: If the process cannot start, times out, produces
            unreadable output or exits with a non-zero status.
    """
    log.debug("Running: %s", " ".join(cmd))

    try:
        # PACS replies may use non-UTF-8 character sets (e.g. ISO_IR 100)
        result = subprocess.run(
            cmd,
            capture_output=True,
            text=True,
            encoding="utf-8",
            errors="replace",
            check=False,
            timeout=timeout,
        )
    except subprocess.TimeoutExpired as exc:
        raise ProtocolError(f"timed out after {timeout}s", server) from exc
    except OSError as exc:
        raise ProtocolError(f"Cannot execute {cmd[0] if cmd else 'command'}: {exc}", server) from exc
    except ValueError as exc:
        raise ProtocolError(f"Unreadable output: {exc}", server) from exc

    if result.returncode != 0:
        log.debug("Exited with code %d", result.returncode)
        log.debug("STDERR:\n%s", result.stderr)
        detail = (result.stderr or result.stdout or "").strip().splitlines()
        reason = detail[-1] if detail else "no output"
        raise ProtocolError(f"exit status {result.returncode}: {reason}", server)

    log.debug("Raw output (%d bytes)", len(result.stdout))
    return result.stdout
