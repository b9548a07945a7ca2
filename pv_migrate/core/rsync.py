"""Rsync command construction and output parsing."""

import re
from typing import Any


def build_rsync_args(
    source_path: str,
    target: str,
    delete: bool = False,
    ssh_command: str | None = None,
) -> list[str]:
    """Build the rsync command line run inside a transfer pod.

    Args:
        source_path: Directory to copy from (contents are copied, not the directory)
        target: Local directory or remote ``user@host:path`` target
        delete: Delete files on target not in source
        ssh_command: Remote shell command for ``-e``

    Returns:
        Command as list of strings
    """
    rsync_args = ["rsync", "-av", "--stats"]
    if delete:
        rsync_args.append("--delete")
    if ssh_command:
        rsync_args.extend(["-e", ssh_command])

    rsync_args.extend([source_path.rstrip("/") + "/", target])
    return rsync_args


def parse_rsync_stats(output: str) -> dict[str, Any]:
    """Parse rsync output for transfer statistics.

    Args:
        output: Rsync command output

    Returns:
        Dictionary with transfer statistics
    """
    stats = {
        "files_transferred": 0,
        "total_size": 0,
        "transfer_rate": "",
        "speedup": 1.0,
    }

    for line in output.split("\n"):
        if (
            "Number of files transferred:" in line
            or "Number of regular files transferred:" in line
        ):
            match = re.search(r"(\d[\d,]*)", line)
            if match:
                stats["files_transferred"] = int(match.group(1).replace(",", ""))
        elif "Total transferred file size:" in line:
            match = re.search(r"([\d,]+) bytes", line)
            if match:
                stats["total_size"] = int(match.group(1).replace(",", ""))
        elif "sent" in line and "received" in line:
            match = re.search(r"([\d,]+\.?\d*) (\w+/sec)", line)
            if match:
                stats["transfer_rate"] = f"{match.group(1)} {match.group(2)}"
        elif "speedup is" in line:
            match = re.search(r"speedup is ([\d,]+\.?\d*)", line)
            if match:
                stats["speedup"] = float(match.group(1).replace(",", ""))

    return stats
