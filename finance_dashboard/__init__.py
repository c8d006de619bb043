"""Personal Finance Dashboard package."""

__all__ = [
    "config",
    "errors",
    "categorizer",
    "normalize",
    "gocardless",
    "snapshot",
    "sync",
    "status",
    "scheduler",
    "data_loader",
    "analytics",
    "reports",
    "webapp",
]

__version__ = "0.1.0"
