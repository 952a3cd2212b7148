"""
Anim asset layer

Resolves sprite data across the SD/HD/HD2 containers of an anim tree,
overlays pending edits and saves them back transactionally.
"""

from .context import AssetState
from .edits import RefEdit, ValuesEdit
from .errors import AnimError, AssetBusyError, DecodeError, SaveError, StructuralError
from .files import File, Files
from .layout import Variant

__all__ = [
    "AssetState",
    "RefEdit",
    "ValuesEdit",
    "AnimError",
    "AssetBusyError",
    "DecodeError",
    "SaveError",
    "StructuralError",
    "File",
    "Files",
    "Variant",
]
