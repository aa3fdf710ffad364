from dailies.models.base import Base
from dailies.models.status import Status
from dailies.models.project import Project
from dailies.models.episode import Episode
from dailies.models.sequence import Sequence
from dailies.models.asset import Asset
from dailies.models.playlist import Playlist
from dailies.models.version import Version
from dailies.models.notification import Notification

__all__ = [
    "Base",
    "Status",
    "Project",
    "Episode",
    "Sequence",
    "Asset",
    "Playlist",
    "Version",
    "Notification",
]
