"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, ReminderState)
- time_resolver.py: time text -> absolute instant in the configured timezone
- task_store.py: per-owner in-memory store of pending tasks
- task_backend.py: optional SQLite write-through backend
- reminder_scheduler.py: per-task timer state machine with escalation
- task_api.py: command contract used by connectors
"""
