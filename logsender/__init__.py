"""Tail log files and forward each line through pluggable handlers."""
