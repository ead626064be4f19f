"""
ShiggyBot - Discord community helper bot

ShiggyBot serves a client-mod community with moderation tools, plugin lookup
and automatic previews of repository links.

Core Components:

- **Moderation**: Prefix and slash commands for ban, kick, timeout, purge and
  role management, backed by a pure argument resolver that understands reply
  targets, mentions, raw IDs and duration/count tokens
- **Plugin Search**: Tiered fuzzy ranking of the community plugin catalog with
  install-link buttons
- **Link Previews**: Commit and code-snippet embeds for GitHub and Gitea-style
  repository links
- **Community Helpers**: Auto-role on join, sticky notes, ping/help/about

Usage:
    from shiggybot.main import main
    main()  # Starts the bot
"""
