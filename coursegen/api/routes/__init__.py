from . import content

__all__ = ["content"]
