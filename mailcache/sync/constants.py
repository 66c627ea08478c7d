"""Sync layer constants."""

# Emails requested per page, locally and remotely
PAGE_SIZE = 20

# config table key holding "true"/"false"
OFFLINE_MODE_KEY = "offline_mode"

PREVIEW_LENGTH = 100
