"""
SheetSync - Authentication API and Google Sheets sync for workflow runs.

Example:
    >>> from sheetsync.domains.sync import SyncService, TaskRegistry
    >>> service = SyncService(registry=TaskRegistry(), writer=writer)
    >>> await service.enqueue("robot-1", "run-42")
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
