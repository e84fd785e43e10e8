"""Services opportunity tracker - disposition and action-plan service."""
