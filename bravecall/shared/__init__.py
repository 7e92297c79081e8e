"""Shared models, utilities and persistence for Brave Call services."""
