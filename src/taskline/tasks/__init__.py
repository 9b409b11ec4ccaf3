"""
Task subsystem.

Components:
- task_models.py: data structures (TaskRecord, TaskStatus, UserIdentity, TaskFilter)
- ordering.py: urgency / status / today orderings
- task_store.py: SQLite-backed TaskStore + UserDirectory
- remote_store.py: HTTP client for the remote record service
- task_api.py: small high-level helpers used by the rest of the app
- task_scheduler.py: morning / evening / admin digests
"""
