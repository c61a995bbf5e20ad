"""
Configuration management for Warncord.

- **app_configuration.py**: YAML configuration loader (database path, default
  filter terms, presence text). Falls back to defaults on missing or malformed
  files.
"""
