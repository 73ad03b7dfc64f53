"""Model package exports."""

from models.taxonomy import *  # noqa: F401,F403
from models.design import DecalLayer, DecalTransform, DesignDescriptor, Position, TextStyleDescriptor
from models.errors import DecalError

__all__ = ["DecalLayer", "DecalTransform", "DesignDescriptor", "Position", "TextStyleDescriptor", "DecalError"]
