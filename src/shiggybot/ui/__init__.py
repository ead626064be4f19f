"""Discord UI components (views and buttons) used by the ShiggyBot cogs."""
