"""Backup pipeline: transports, command composition and execution."""
