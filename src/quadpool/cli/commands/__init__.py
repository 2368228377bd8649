"""quadpool CLI commands."""

from .integrate import integrands, integrate
from .run import run

__all__ = ["integrands", "integrate", "run"]
