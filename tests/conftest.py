from __future__ import annotations

import faulthandler
import os
import socket
import sys
import tempfile
import threading
import traceback
from pathlib import Path
from types import FrameType
from typing import Dict

import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

faulthandler.enable()  # Ensure crashes emit tracebacks.
socket.setdefaulttimeout(10)

# Keep app.log out of the source tree; must be set before buyerlookup is imported.
os.environ.setdefault("BUYERLOOKUP_WORK_DIR", tempfile.mkdtemp(prefix="buyerlookup-tests-"))


def _snapshot_thread_stacks() -> Dict[int, str]:
    frames: Dict[int, FrameType] = sys._current_frames()  # type: ignore[attr-defined]
    stacks: Dict[int, str] = {}
    for ident, frame in frames.items():
        stacks[ident] = "".join(traceback.format_stack(frame))
    return stacks


@pytest.fixture(autouse=True, scope="session")
def _thread_diagnostics() -> None:
    """Dump live non-daemon threads at the end of the test session."""

    yield

    stacks = _snapshot_thread_stacks()
    lingering: list[threading.Thread] = []
    for thread in threading.enumerate():
        if thread.daemon or thread is threading.current_thread():
            continue
        thread.join(timeout=2)
        if thread.is_alive():
            lingering.append(thread)

    if lingering:
        print("\n[pytest] lingering threads detected:", file=sys.stderr)
        for thread in lingering:
            stack = stacks.get(thread.ident, "<no stack>\n")
            print(
                f"- Thread {thread.name} (ident={thread.ident}) still alive after tests", file=sys.stderr
            )
            print(stack, file=sys.stderr)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for key in (
        "BUYERLOOKUP_FEED_URL",
        "BUYERLOOKUP_TIMEOUT_SEC",
        "BUYERLOOKUP_USER_AGENT",
        "BUYERLOOKUP_ROW_POLICY",
    ):
        monkeypatch.delenv(key, raising=False)


@pytest.fixture
def sample_csv() -> str:
    return (
        "Documento;Código Referência;Nome Comprador;E-mail Comprador\r\n"
        "1001;REF-A;Ana Souza;ana@x.com\r\n"
        "1002;REF-B;Bia Lima;BIA@X.COM\r\n"
        "\r\n"
        "1003;REF-C;Ana Souza;ana@x.com\r\n"
        "1004;;;\r\n"
    )
