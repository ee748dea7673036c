from .registry import InMemoryJobRegistry, JobHandle

__all__ = ["InMemoryJobRegistry", "JobHandle"]
