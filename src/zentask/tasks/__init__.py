"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskDraft, Priority, Category, ViewMode)
- local_store.py: JSON-blob store under a fixed storage key
- task_store.py: SQLite-backed relational table store
- reconciler.py: optimistic updates with compensating rollback
- views.py: pure projections (today/upcoming/completed/overdue, dashboard stats)
"""
