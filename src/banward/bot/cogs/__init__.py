"""Cogs registered by ``banward.main.load_cogs``."""
