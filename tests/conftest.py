from __future__ import annotations

import sys
from pathlib import Path

ROOT = Path(__file__).resolve().parents[1]
for _path in (ROOT, ROOT / "src"):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))


import pytest
from lsprotocol.types import ClientCapabilities

from cfls.config import Configuration
from cfls.state import ServerState


@pytest.fixture
def sent() -> list:
    return []


@pytest.fixture
def state(tmp_path: Path, sent: list) -> ServerState:
    config = Configuration.new(tmp_path.resolve(), ClientCapabilities())
    return ServerState(sent.append, config)
