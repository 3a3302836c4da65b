"""Inbox read API package."""
