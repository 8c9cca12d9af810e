from .generated import Base, metadata

__all__ = ["Base", "metadata"]
