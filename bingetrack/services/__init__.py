from bingetrack.services.tmdb import TmdbClient
from bingetrack.services.watch_log import WatchLogStore
from bingetrack.services.categories import build_categories
from bingetrack.services.airdates import partition_by_air_date
from bingetrack.services.history import build_history
from bingetrack.services.tracker import WatchTracker, WatchUpdate

__all__ = [
    "TmdbClient",
    "WatchLogStore",
    "build_categories",
    "partition_by_air_date",
    "build_history",
    "WatchTracker",
    "WatchUpdate"
]
