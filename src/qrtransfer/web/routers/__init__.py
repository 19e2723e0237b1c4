from qrtransfer.web.routers.listen import router as listen_router
from qrtransfer.web.routers.send import router as send_router
from qrtransfer.web.routers.sessions import router as sessions_router

__all__ = [
    "listen_router",
    "send_router",
    "sessions_router",
]
