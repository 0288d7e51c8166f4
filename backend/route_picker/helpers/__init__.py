"""Helper functions shared by services."""
