from bingetrack.models.watched_episode import WatchedEpisode
from bingetrack.models.onboarded_show import OnboardedShow
from bingetrack.models.settings import AppSettings

__all__ = [
    "WatchedEpisode",
    "OnboardedShow",
    "AppSettings"
]
