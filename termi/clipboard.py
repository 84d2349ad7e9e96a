from __future__ import annotations

import asyncio
import shutil
import subprocess
import sys
from typing import List, Optional


def clipboard_command(platform: Optional[str] = None) -> List[str]:
    platform = platform or sys.platform
    if platform == "darwin":
        return ["pbcopy"]
    if platform.startswith("win"):
        return ["clip"]
    if platform.startswith("linux"):
        if shutil.which("xclip"):
            return ["xclip", "-selection", "clipboard"]
        if shutil.which("xsel"):
            return ["xsel", "--clipboard", "--input"]
        if shutil.which("wl-copy"):
            return ["wl-copy"]
        raise RuntimeError("no clipboard utility found (install xclip or xsel)")
    raise RuntimeError(f"unsupported platform: {platform}")


def copy(text: str) -> None:
    cmd = clipboard_command()
    proc = subprocess.run(cmd, input=text, text=True, capture_output=True)
    if proc.returncode != 0:
        raise RuntimeError(proc.stderr.strip() or f"{cmd[0]} exited with {proc.returncode}")


async def copy_async(text: str) -> None:
    await asyncio.to_thread(copy, text)
