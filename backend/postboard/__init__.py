"""Postboard: posts feed data layer."""
