from bingetrack.routers.watchlist import router as watchlist_router
from bingetrack.routers.episodes import router as episodes_router
from bingetrack.routers.settings import router as settings_router

__all__ = ["watchlist_router", "episodes_router", "settings_router"]
