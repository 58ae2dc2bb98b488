"""
loanform distribution import namespace.

Re-exports the `conditional_forms` engine so integrators can write
`from loanform import FormSession`.
"""

from importlib.metadata import PackageNotFoundError, version

# src/loanform/__init__.py
from conditional_forms import *  # noqa: F401,F403
from conditional_forms import __all__ as _engine_all

try:
    __version__ = version("loanform")
except PackageNotFoundError:  # pragma: no cover - fallback for source checkouts without metadata
    __version__ = "0+unknown"

__all__ = [*_engine_all, "__version__"]
