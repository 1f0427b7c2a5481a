"""Repository eligibility filters."""

from .archive import ArchiveFilter
from .base import BaseFilter, FilterResult
from .chain import FilterChain
from .disabled import DisabledFilter
from .fork import ForkFilter
from .visibility import VisibilityFilter

__all__ = [
    "ArchiveFilter",
    "BaseFilter",
    "DisabledFilter",
    "FilterChain",
    "FilterResult",
    "ForkFilter",
    "VisibilityFilter",
]
