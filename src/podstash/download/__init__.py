"""Download scheduling for Podstash."""

from podstash.download.scheduler import (
    DownloadScheduler,
    HostQueue,
    Validator,
)

__all__ = [
    "DownloadScheduler",
    "HostQueue",
    "Validator",
]
