"""
Utility functions and helpers for Banward.

- **logger.py**: Centralized logging configuration with colored console output
  through prompt_toolkit and one log file per session under ``logs/``.

- **discord_utils.py**: Stateless Discord helpers: permission checks, id and
  mention parsing, duration conversion for temporary bans.
"""
