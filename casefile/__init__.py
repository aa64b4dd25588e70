"""Scripted detective case service with a daily resource economy."""
