"""
Task subsystem.

Components:
- task_models.py: data structures (Task, SortOrder, FilterPreferences)
- task_store.py: SQLite-backed storage, one-shot and live queries
- task_feed.py: combines search text + filter preferences into one live task list
"""
