from fmrec.utils.logging import get_logger
from fmrec.utils.seeding import seed_everything

__all__ = [
    "seed_everything",
    "get_logger",
]
