"""Background tasks for the Progress Syncer platform.

This package contains Celery tasks for:
- The once-a-minute reminder sweep (to-dos and mindset journal prompts)
"""
