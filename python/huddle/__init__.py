"""Huddle - team messaging backend (channels, direct messages, notifications)."""
