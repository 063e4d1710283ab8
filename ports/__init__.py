from .host import ExecutorHostPort
from .page import RenderedPagePort
from .repos import StoreRepoPort

__all__ = [
    "ExecutorHostPort",
    "RenderedPagePort",
    "StoreRepoPort",
]
