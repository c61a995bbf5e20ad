"""
Utility functions and helpers for Warncord.

- **logger.py**: coloured prompt_toolkit console output plus per-session
  rotating log files.
- **duration.py**: ``30m`` / ``2h`` / ``1d`` / ``1w`` duration tokens.
- **format_utils.py**: text rendering for command replies.
"""
