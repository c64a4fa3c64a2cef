"""
Banward - Discord moderation bot with durable temporary bans

Core Components:

- **Scheduler**: Persists "lift this ban at time T" to a JSON record, arms one
  asyncio timer per pending unban, and on startup fires every unban that
  expired while the bot was offline
- **Moderation Commands**: ``/ban``, ``/unban``, ``/tempban`` and ``/tempbans``
  slash commands that feed the scheduler
- **Unban Executor**: Lifts the ban through the Discord API when a deadline fires

Usage:
    from banward.main import main
    main()
"""
