"""Key image marker: a Probe subtype flagging an image of interest."""
from __future__ import annotations

from srmeasure.adapters.probe import ProbeAdapter


class KeyImageAdapter(ProbeAdapter):
    tool_type = "KeyImage"

    def __init__(self) -> None:
        super().__init__(parent_type=ProbeAdapter.tool_type)
