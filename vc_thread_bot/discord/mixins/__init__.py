from .events_mixin import EventsMixin
from .identity_mixin import IdentityMixin
from .lifecycle_mixin import LifecycleMixin
from .rename_mixin import RenameMixin

__all__ = [
    "EventsMixin",
    "IdentityMixin",
    "LifecycleMixin",
    "RenameMixin",
]
