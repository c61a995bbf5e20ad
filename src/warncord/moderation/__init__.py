"""
Moderation core for Warncord.

- **filter_matcher.py**: case-insensitive substring matching of filter terms.
- **policy_store.py**: per-guild policies and filter term CRUD.
- **violation_tracker.py**: per-user warning/mute/ban state with per-user locks.
- **escalation_engine.py**: decides delete / notice / mute / ban for a match.
- **action_executor.py**: applies actions to state, audit trail and Discord.
- **command_handler.py**: admin and user commands.
- **audit_log.py**: append-only moderation events and statistics.
"""
