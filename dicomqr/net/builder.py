"""Build Docker commands for dcm4che ``findscu`` and ``movescu``.

This module only assembles the token lists. Execution occurs in
``dicomqr.net.runner.run_tool``.
"""

from __future__ import annotations

from typing import Dict, List, Optional, Sequence

DCM4CHE_BIN = "/opt/dcm4che/bin"


def _docker_prefix(image: str, tool: str, network: Optional[str]) -> List[str]:
    cmd: List[str] = ["docker", "run", "--rm"]
    if network:
        cmd += ["--network", network]
    cmd += ["--entrypoint", f"{DCM4CHE_BIN}/{tool}", image]
    return cmd


def build_findscu(
    image: str,
    calling_ae_title: str,
    called_ae_title: str,
    host: str,
    port: int,
    query_tags: Sequence[str],
    filters: Optional[Dict[str, str]] = None,
    network: Optional[str] = None,
) -> List[str]:
    """Return a study-level ``findscu`` invocation inside a Docker image.

    Args:
        image: dcm4che tools image, for example
            ``"dcm4che/dcm4che-tools:5.32.0"``.
        calling_ae_title: Local AE title passed via ``--bind``.
        called_ae_title: Remote AE title.
        host: Remote hostname or IP.
        port: Remote DICOM port.
        query_tags: Attribute keywords requested via ``-r``.
        filters: Optional mapping of keyword to match value passed as
            ``-m <keyword>=<value>``; empty values are skipped.
        network: Optional ``docker --network`` value.

    Returns:
        list[str]: Command-line tokens suitable for ``subprocess.run``.
    """
    cmd = _docker_prefix(image, "findscu", network)
    cmd += [
        "--bind",
        calling_ae_title,
        "--connect",
        f"{called_ae_title}@{host}:{port}",
        "-L",
        "STUDY",
    ]

    for tag in query_tags:
        cmd.extend(["-r", tag])

    if filters:
        for tag, val in filters.items():
            if val not in (None, ""):
                cmd.extend(["-m", f"{tag}={val}"])

    return cmd


def build_movescu(
    image: str,
    calling_ae_title: str,
    called_ae_title: str,
    host: str,
    port: int,
    study_uid: str,
    move_destination: str,
    calling_port: Optional[int] = None,
    network: Optional[str] = None,
) -> List[str]:
    """Return a study-level C-MOVE ``movescu`` invocation.

    Args:
        image: dcm4che tools image.
        calling_ae_title: Local AE title; bound to *calling_port* when given.
        called_ae_title: Remote AE title.
        host: Remote hostname or IP.
        port: Remote DICOM port.
        study_uid: StudyInstanceUID to move.
        move_destination: AE title the remote node sends the instances to.
        calling_port: Optional local port for the association.
        network: Optional ``docker --network`` value.

    Returns:
        list[str]: Command-line tokens suitable for ``subprocess.run``.
    """
    bind = f"{calling_ae_title}:{calling_port}" if calling_port else calling_ae_title
    cmd = _docker_prefix(image, "movescu", network)
    cmd += [
        "--bind",
        bind,
        "--connect",
        f"{called_ae_title}@{host}:{port}",
        "--dest",
        move_destination,
        "-L",
        "STUDY",
        "-m",
        f"StudyInstanceUID={study_uid}",
    ]
    return cmd
