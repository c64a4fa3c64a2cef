"""
Durable scheduling of time-delayed moderation actions.

- **schedule_store.py**: Atomic JSON record of pending actions (write to a
  temp file, then ``os.replace``).
- **schedule_registry.py**: In-memory pending actions keyed by guild and user,
  saved to the store after every mutation under one asyncio lock.
- **timer_engine.py**: One asyncio task per pending action; runs the executor
  at the deadline and drops the entry whatever the outcome.
- **reconciler.py**: Startup catch-up that fires overdue actions and re-arms
  the rest.
- **unban_scheduler.py**: Facade used by the command layer.
"""
