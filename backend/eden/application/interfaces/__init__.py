from .change_channel import ChangeChannel, ChangeSubscription
from .key_value_backend import KeyValueBackend

__all__ = [
    "ChangeChannel",
    "ChangeSubscription",
    "KeyValueBackend",
]
