"""Discord cogs registered by :func:`shiggybot.main.load_cogs`."""
