"""
Discord integration for Warncord.

- **discord_platform.py**: py-cord implementation of the chat platform
  contract used by the moderation core (timeouts, bans, deletes, messages).
- **cogs/**: slash commands, the message scanner and lifecycle events.
"""
