from typing import List, Optional

from pydantic import BaseModel, Field


class SiteConfig(BaseModel):
    name: str = Field(..., min_length=1)
    url: str = Field(..., min_length=1)


class MonitorSettings(BaseModel):
    check_interval_seconds: Optional[int] = None
    timeout_seconds: Optional[int] = None


class MonitorConfig(BaseModel):
    """Shape of the targets file shared with the config collaborator."""
    settings: MonitorSettings = MonitorSettings()
    sites: List[SiteConfig] = []
