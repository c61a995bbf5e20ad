"""
Warncord - word-filter moderation bot for Discord

Warncord scans guild messages against a list of filtered words, keeps a
per-user warning count, and escalates repeat offenders to timeouts and bans
according to per-term and per-guild thresholds. Every applied action is
recorded in an append-only audit trail that admins can browse with slash
commands.

Usage:
    from warncord.main import main
    main()
"""
