"""Discord-facing layer: the unban executor and the command cogs."""
