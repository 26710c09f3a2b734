from parkshare.jobs.scheduler import LifecycleTicker

__all__ = ["LifecycleTicker"]
