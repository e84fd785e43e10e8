"""Tracker service layer."""
