from datetime import datetime, timezone
from typing import List, Optional, Union

from pydantic import BaseModel, Field

SpacePledged = Union[int, float, str]


class StatsSnapshot(BaseModel):
    """Node counts scraped from the telemetry dashboard for one network."""
    node_count: Optional[int] = Field(default=None, description="Nodes on the selected chain")
    subspace_node_count: Optional[int] = Field(default=None, description="Nodes running the Subspace node")
    space_acres_node_count: Optional[int] = Field(default=None, description="Nodes running Space Acres")
    linux_node_count: Optional[int] = Field(default=None, description="Nodes on Linux")
    windows_node_count: Optional[int] = Field(default=None, description="Nodes on Windows")
    macos_node_count: Optional[int] = Field(default=None, description="Nodes on macOS")

    def is_empty(self) -> bool:
        return all(value is None for value in self.model_dump().values())


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """ISO-8601 UTC timestamp with millisecond precision, e.g. 2024-05-01T12:00:00.000Z."""
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%S.") + f"{now.microsecond // 1000:03d}Z"


def _cell(value):
    # Empty cell rather than a literal "None"
    return "" if value is None else value


def build_row(timestamp: str, snapshot: StatsSnapshot, space_pledged: SpacePledged) -> List:
    """Fixed column order of the tracking sheet."""
    return [
        timestamp,
        _cell(snapshot.node_count),
        str(space_pledged),
        _cell(snapshot.subspace_node_count),
        _cell(snapshot.space_acres_node_count),
        _cell(snapshot.linux_node_count),
        _cell(snapshot.windows_node_count),
        _cell(snapshot.macos_node_count),
    ]


class PipelineResult(BaseModel):
    """Outcome of one network's scrape-fetch-append pass."""
    network: str
    snapshot: StatsSnapshot
    space_pledged: SpacePledged
    appended: bool
    row: Optional[List] = None
