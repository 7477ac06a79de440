"""
Task subsystem.

Components:
- task_models.py: data structures (Task, TaskStatus, allowed transitions)
- task_registry.py: thread-safe in-memory store + status transitions
- conflicts.py: snapshot vs current region text
- controller.py: one asyncio runner per task (submit/cancel/shutdown)
"""
